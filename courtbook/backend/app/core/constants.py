"""Common application-wide constants."""

from decimal import Decimal

# Default operating window of a court, in local hours
DEFAULT_OPEN_HOUR = 6
DEFAULT_CLOSE_HOUR = 22

# Cancellation policy thresholds, in hours before the reservation starts
CANCELLATION_CUTOFF_HOURS = 24
FULL_REFUND_HOURS = 48
PARTIAL_REFUND_RATE = Decimal("0.5")
FULL_REFUND_RATE = Decimal("1")

# Recurring bookings
DEFAULT_MAX_OCCURRENCES = 10
MAX_RECURRENCE_OCCURRENCES = 100

# Metadata for system-driven cancellations
PAYMENT_TIMEOUT_REASON = "payment_timeout"
SYSTEM_ACTOR = "system"

MONEY_QUANT = Decimal("0.01")


__all__ = [
    "DEFAULT_OPEN_HOUR",
    "DEFAULT_CLOSE_HOUR",
    "CANCELLATION_CUTOFF_HOURS",
    "FULL_REFUND_HOURS",
    "PARTIAL_REFUND_RATE",
    "FULL_REFUND_RATE",
    "DEFAULT_MAX_OCCURRENCES",
    "MAX_RECURRENCE_OCCURRENCES",
    "PAYMENT_TIMEOUT_REASON",
    "SYSTEM_ACTOR",
    "MONEY_QUANT",
]
