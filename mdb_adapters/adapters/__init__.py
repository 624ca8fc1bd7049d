"""
Document adapters.

Provides the generic CRUD adapter, the proximity-search adapter, the model
base class and the sort option builders.
"""

from .base import DocumentAdapter
from .geo import ActivityFilter, GeoPoint, GeoQuery
from .models import (
    Model,
    QueryProjecting,
    SaveHooked,
    parse_object_id,
    to_simple_object,
)
from .order import build_find_options, build_order, build_sort_options
from .user_activity import UserActivityAdapter

__all__ = [
    # Adapters
    "DocumentAdapter",
    "UserActivityAdapter",
    # Models
    "Model",
    "QueryProjecting",
    "SaveHooked",
    "parse_object_id",
    "to_simple_object",
    # Ordering
    "build_order",
    "build_sort_options",
    "build_find_options",
    # Geo
    "GeoPoint",
    "GeoQuery",
    "ActivityFilter",
]
