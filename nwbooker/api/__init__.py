"""
Nordic Wellness API Module
"""
from .client import NordicWellnessClient, APIError, TransportError
from .endpoints import Endpoints, BookingRequest, DEFAULT_HEADERS, search_window

__all__ = [
    "NordicWellnessClient",
    "APIError",
    "TransportError",
    "Endpoints",
    "BookingRequest",
    "DEFAULT_HEADERS",
    "search_window",
]
