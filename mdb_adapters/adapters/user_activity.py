"""
Proximity queries over activity documents.

``UserActivityAdapter`` stores the latest location/activity of an actor
(driver, courier, ...) and answers "who is around this point" with a
3-stage aggregation:

1. ``$geoNear``: candidates within the distance bounds, optionally
   restricted to one activity, with the computed ``distance`` field,
2. ``$sort``: by ``distance`` then ``status``,
3. ``$group``: one document per ``primary_key``, the first one after the
   sort, so an actor with several location samples is returned once.

Upserts also append an immutable record to an activity-log collection and
make sure the 2dsphere index exists. Both run as background tasks and never
affect the upsert's result.

Usage:
    logs = DocumentAdapter(pool, DriverActivityLog)
    drivers = UserActivityAdapter(pool, DriverActivity, log_adapter=logs, primary_key="user_id")

    await drivers.upsert_one({"user_id": "u1", "activity": 1, "location": point})
    nearby = await drivers.find_many_around(
        {"geometry": point, "max_distance": 2000}, {"activity": 1}
    )
"""

from typing import Any, ClassVar

from pymongo import DESCENDING

from ..constants import (
    DEFAULT_DISTANCE_FIELD,
    DEFAULT_LOCATION_FIELD,
    DEFAULT_STATUS_FIELD,
    GEO2DSPHERE,
    GROUP_ROOT_FIELD,
)
from ..database import ConnectionPool
from .base import DocumentAdapter, M
from .geo import ActivityFilter, GeoQuery


class UserActivityAdapter(DocumentAdapter[M]):
    """
    Document adapter with deduplicated proximity search.

    Sort directions are class attributes; both default to descending.
    """

    activity_field: ClassVar[str] = "activity"
    distance_field: ClassVar[str] = DEFAULT_DISTANCE_FIELD
    location_field: ClassVar[str] = DEFAULT_LOCATION_FIELD
    status_field: ClassVar[str] = DEFAULT_STATUS_FIELD
    distance_order: ClassVar[int] = DESCENDING
    status_order: ClassVar[int] = DESCENDING

    def __init__(
        self,
        pool: ConnectionPool,
        model_class: type[M],
        log_adapter: DocumentAdapter,
        primary_key: str,
        **kwargs: Any,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            pool: Connection pool shared by the application
            model_class: Model of the activity collection
            log_adapter: Adapter of the activity-log collection
            primary_key: Field identifying one actor; results are
                         deduplicated on it
            **kwargs: Passed to ``DocumentAdapter``
        """
        if not primary_key:
            raise ValueError("primary_key is required")
        super().__init__(pool, model_class, **kwargs)
        self.log_adapter = log_adapter
        self.primary_key = primary_key
        self._geo_index_ready = False

    async def upsert_one(self, form: Any) -> M:
        """
        Upsert the activity and log it.

        The log insert and the index check are scheduled on ``self.tasks``;
        their failures are logged and never reach the caller. Nothing is
        scheduled when the upsert is rejected by a guard.
        """
        model, query_params, request_doc = self._prepare_upsert(form)

        self.tasks.spawn(
            self.log_adapter.insert_one(form),
            name=f"{self.log_adapter.collection_name}.insert_one",
        )

        model = await self._issue_upsert(model, query_params, request_doc)

        self.tasks.spawn(
            self.ensure_geo_index(),
            name=f"{self.collection_name}.ensure_geo_index",
        )
        return model

    async def ensure_geo_index(self) -> str | None:
        """Create the 2dsphere index on the location field once per adapter."""
        if self._geo_index_ready:
            return None

        # Claimed before the await so concurrent upserts issue a single build
        self._geo_index_ready = True
        try:
            index_name = await self.query("create_index", [(self.location_field, GEO2DSPHERE)])
        except Exception:
            self._geo_index_ready = False
            raise

        self.log.info(f"Create index successfully: {index_name}")
        return index_name

    def find_around_query(
        self, geo_query: GeoQuery | dict[str, Any], activity_filter: Any = None
    ) -> list[dict[str, Any]]:
        """
        Build the proximity pipeline.

        Args:
            geo_query: ``GeoQuery`` or a mapping it validates from
            activity_filter: ``ActivityFilter``, a mapping, or None

        Returns:
            Aggregation pipeline ($geoNear, $sort, $group)
        """
        geo = GeoQuery.model_validate(geo_query)
        activity = ActivityFilter.model_validate(activity_filter or {})

        query: dict[str, Any] = {}
        if activity.activity is not None:
            query[self.activity_field] = activity.activity

        geo_near: dict[str, Any] = {
            "near": geo.geometry.to_geojson(),
            "distanceField": self.distance_field,
            "query": query,
            "spherical": True,
        }
        if geo.max_distance:
            geo_near["maxDistance"] = geo.max_distance
        if geo.min_distance:
            geo_near["minDistance"] = geo.min_distance

        pipeline = [
            {"$geoNear": geo_near},
            {
                "$sort": {
                    self.distance_field: self.distance_order,
                    self.status_field: self.status_order,
                }
            },
            {
                "$group": {
                    "_id": f"${self.primary_key}",
                    GROUP_ROOT_FIELD: {"$first": "$$ROOT"},
                }
            },
        ]

        self.log.debug(f"Selects geo data: {pipeline!r}")
        return pipeline

    async def _aggregate(self, pipeline: list[dict[str, Any]]) -> list[dict[str, Any]]:
        collection = await self.get_collection()

        async def aggregate() -> list[dict[str, Any]]:
            return await collection.aggregate(pipeline).to_list(length=None)

        results = await self._run("aggregate", aggregate, pipeline)
        return [group[GROUP_ROOT_FIELD] for group in results]

    async def find_many_around(
        self, geo_query: GeoQuery | dict[str, Any], activity_filter: Any = None
    ) -> list[dict[str, Any]]:
        """
        Documents around a point, one per ``primary_key``.

        ``$group`` does not preserve the order of its input, so the groups
        come back in no particular order.

        Returns:
            The kept document of each group
        """
        pipeline = self.find_around_query(geo_query, activity_filter)
        documents = await self._aggregate(pipeline)
        self.log.debug(f"Selects around {self.collection_name} successfully. Count: {len(documents)}")
        return documents

    async def find_one_around(
        self, geo_query: GeoQuery | dict[str, Any], activity_filter: Any = None
    ) -> dict[str, Any] | None:
        """
        One document of the ``find_many_around`` result, or None.

        ``$limit: 1`` runs after ``$group``, so which group is returned is
        not specified by MongoDB.
        """
        pipeline = self.find_around_query(geo_query, activity_filter)
        pipeline.append({"$limit": 1})

        documents = await self._aggregate(pipeline)
        return documents[0] if documents else None
