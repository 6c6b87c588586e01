from .slot import AvailableSlot
from .reservation import (
    ConflictCheck,
    ConflictCheckResult,
    ConflictEntry,
    OccurrenceConflict,
    RecurrenceRuleIn,
    RecurringReservationCreate,
    RecurringReservationResult,
    Reservation,
    ReservationAction,
    ReservationCancel,
    ReservationCreate,
    ReservationCreated,
)
