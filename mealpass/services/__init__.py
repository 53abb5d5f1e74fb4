"""
Business logic services.
Contains the booking lifecycle, the redemption verifier and their collaborators.
"""

from .booking_service import BookingService, booking_service
from .booking_store import BookingStore, booking_store
from .meal_catalog import MealCatalog, meal_catalog
from .redemption_service import RedemptionService, redemption_service

__all__ = [
    "BookingService",
    "BookingStore",
    "MealCatalog",
    "RedemptionService",
    "booking_service",
    "booking_store",
    "meal_catalog",
    "redemption_service",
]
