# backend/app/services/slots/__init__.py
"""
Slots calculation module.

Candidates: shift window stepped by the business slot interval
Filtering: holidays, existing appointments, simultaneous-booking limit
Caching: short-lived per-provider and per-day caches (TTLCache / Redis)
"""

from .config import BookingConfig, get_booking_config, day_of_week
from .cache import CacheEntry, TTLCache, NullCache, RedisTTLCache
from .calculator import generate_slots
from .filtering import filter_available_slots, intervals_overlap
from .data_source import SlotDataSource, SqlSlotDataSource
from .availability import AvailabilityEngine

__all__ = [
    "BookingConfig",
    "get_booking_config",
    "day_of_week",
    "CacheEntry",
    "TTLCache",
    "NullCache",
    "RedisTTLCache",
    "generate_slots",
    "filter_available_slots",
    "intervals_overlap",
    "SlotDataSource",
    "SqlSlotDataSource",
    "AvailabilityEngine",
]
