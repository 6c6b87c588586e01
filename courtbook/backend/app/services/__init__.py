from . import (
    availability_service,
    conflict_service,
    court_service,
    payment_service,
    recurrence,
    reservation_service,
)
__all__ = [
    "availability_service",
    "conflict_service",
    "court_service",
    "payment_service",
    "recurrence",
    "reservation_service",
]
