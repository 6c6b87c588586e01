from . import (
    courts,
    reservations,
    payments,
    misc,
)

__all__ = [
    "courts",
    "reservations",
    "payments",
    "misc",
]
