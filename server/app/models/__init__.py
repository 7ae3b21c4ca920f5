"""Models module exporting all database models."""

from .booking import Booking, BookingStatus
from .tour import Tour

__all__ = [
    # Catalog entity
    "Tour",

    # Referencing entity
    "Booking",
    "BookingStatus",
]
