"""
API routes and endpoints.
"""

from fastapi import APIRouter

from .v1 import bookings, meals, redemptions

api_router = APIRouter()

api_router.include_router(bookings.router, prefix="/bookings", tags=["预订"])
api_router.include_router(redemptions.router, prefix="/redemptions", tags=["核销"])
api_router.include_router(meals.router, prefix="/meals", tags=["餐次"])
