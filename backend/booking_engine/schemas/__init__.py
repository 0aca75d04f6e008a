# backend/booking_engine/schemas/__init__.py
"""Pydantic schemas for engine results and the public API."""
