"""Engine-wide constants."""

from __future__ import annotations

# Minutes in a calendar day; "24:00" parses to this value as an end-of-day sentinel
MINUTES_PER_DAY = 1440

# Slot enumeration
DEFAULT_SLOT_INTERVAL = 30  # minutes
DEFAULT_DURATION_MINUTES = 60

# Timezone used when a location does not carry one
DEFAULT_TIMEZONE = "Asia/Tokyo"

# Rolling usage window
USAGE_CYCLE_DAYS = 30

# Booking window policy
MIN_BOOKING_LEAD_MINUTES = 60
MAX_BOOKING_ADVANCE_DAYS = 90

# Result error codes
ERROR_CODE_INVALID_INPUT = "INVALID_INPUT"
ERROR_CODE_QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
ERROR_CODE_STORAGE_ERROR = "STORAGE_ERROR"
