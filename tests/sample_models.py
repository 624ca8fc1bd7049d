"""Sample models shared by the adapter tests."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, Optional

from mdb_adapters.adapters import Model

FIXED_NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


@dataclass
class DriverActivity(Model):
    """Latest position of a driver; one document per user_id."""

    collection_name: ClassVar[str] = "driver_activities"
    default_order: ClassVar[Any] = "-updated_at"
    upsert_keys: ClassVar[tuple] = ("user_id",)

    user_id: Optional[str] = None
    activity: Optional[int] = None
    status: Optional[int] = None
    location: Optional[Dict[str, Any]] = None
    updated_at: Optional[datetime] = None

    def before_save(self, is_insert: bool) -> None:
        self.saved_as_insert = is_insert
        self.updated_at = FIXED_NOW


@dataclass
class DriverActivityLog(Model):
    """Append-only history of driver positions."""

    collection_name: ClassVar[str] = "driver_activity_logs"

    user_id: Optional[str] = None
    activity: Optional[int] = None
    status: Optional[int] = None
    location: Optional[Dict[str, Any]] = None


@dataclass
class Trip(Model):
    """Model that projects its own query predicate."""

    collection_name: ClassVar[str] = "trips"

    rider_id: Optional[str] = None
    state: Optional[str] = None

    def to_query_object(self, form: Any) -> Dict[str, Any]:
        if not form or not form.get("rider_id"):
            return {}
        return {"rider_id": form["rider_id"], "state": {"$ne": "closed"}}

