from .court import Court
from .reservation import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    BookingSource,
    MatchType,
    Reservation,
    ReservationStatus,
)
from .audit_log import AuditLog, ActorType
