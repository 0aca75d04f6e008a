"""Availability and usage-quota engine for resource bookings."""
