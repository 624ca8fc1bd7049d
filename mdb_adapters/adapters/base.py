"""
Generic MongoDB document adapter.

``DocumentAdapter`` binds one model class to its collection and exposes the
CRUD surface used by services. Each call:

1. builds a fresh model from the raw form and runs its ``before_save`` hook,
2. projects the request document (insert / form / upsert),
3. resolves the predicate (``_id`` first, then the model's own query
   projection, then the non-``None`` fields of the form),
4. refuses empty predicates and empty documents before touching the store,
5. issues exactly one command and normalizes its result.

The ``*_simple`` variants skip the model entirely and send the raw objects.

Usage:
    pool = ConnectionPool({"default": MongoConfig.from_env()})
    drivers = DocumentAdapter(pool, Driver)

    driver = await drivers.insert_one({"user_id": "u1", "status": 1})
    count = await drivers.update_one({"status": 2}, {"_id": driver.id})
    docs = await drivers.get_many({"status": 2}, {"order": "-updated_at", "limit": 10})
"""

import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Generic, NoReturn, TypeVar

from bson.errors import BSONError
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from ..config import AdapterSettings
from ..constants import (
    DEFAULT_CONFIG_KEY,
    DEFAULT_LOG_NAMESPACE,
    ID_ALIASES,
    ID_FIELD,
    SET_ON_INSERT,
)
from ..database import ConnectionPool
from ..exceptions import GuardViolation, StoreError, UnexpectedError
from ..observability import get_logger, log_operation, record_operation
from ..tasks import BackgroundTasks
from .models import (
    Model,
    QueryProjecting,
    SaveHooked,
    is_empty,
    parse_object_id,
    to_simple_object,
)
from .order import build_find_options, build_sort_options, to_sort_list

M = TypeVar("M", bound=Model)


class DocumentAdapter(Generic[M]):
    """
    CRUD adapter for one model class.

    Write operations return a plain count or the saved model; read-one
    operations return the document or None; read-many operations return a
    list of documents.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        model_class: type[M],
        config_key: str = DEFAULT_CONFIG_KEY,
        tasks: BackgroundTasks | None = None,
        settings: AdapterSettings | None = None,
        log_namespace: str = DEFAULT_LOG_NAMESPACE,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            pool: Connection pool shared by the application
            model_class: Model subclass describing the collection
            config_key: Pool configuration key of the target database
            tasks: Runner for background side writes (a private one by default)
            settings: Adapter settings (read from the environment by default)
            log_namespace: Logger namespace under ``mdb_adapters.``
        """
        self.pool = pool
        self.model_class = model_class
        self.collection_name = model_class.collection_name
        self.config_key = config_key
        self.tasks = tasks or BackgroundTasks()
        self.settings = settings or AdapterSettings.from_env()
        self.log = get_logger(f"mdb_adapters.{log_namespace}", collection=self.collection_name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(collection={self.collection_name!r})"

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    async def connect(self, key: str | None = None) -> AsyncIOMotorDatabase:
        return await self.pool.connect(key or self.config_key)

    async def get_collection(self) -> AsyncIOMotorCollection:
        database = await self.connect()
        return database[self.collection_name]

    async def query(self, func_name: str, *args: Any, **kwargs: Any) -> Any:
        """
        Run one collection method, mapping driver failures to adapter errors.

        Args:
            func_name: Motor collection method name (e.g. "update_one")
            *args, **kwargs: Arguments passed to the method

        Returns:
            The driver result

        Raises:
            StoreError: If MongoDB rejects the command
            UnexpectedError: For any other failure (outside debug mode)
        """
        collection = await self.get_collection()
        command = getattr(collection, func_name)
        return await self._run(func_name, lambda: command(*args, **kwargs), (args, kwargs))

    async def _run(self, operation: str, call: Callable[[], Awaitable[Any]], request: Any) -> Any:
        message = f"{operation} on collection {self.collection_name} failed"
        self.log.debug(f"{operation} {self.collection_name}. Request data: {request!r}")

        start_time = time.time()
        success = False
        try:
            result = await call()
            success = True
            return result
        except PyMongoError as e:
            self.log.error(
                message,
                exc_info=True,
                extra={"operation": operation, "request": repr(request)},
            )
            raise StoreError(
                message,
                operation=operation,
                collection=self.collection_name,
                context={"error_type": type(e).__name__},
            ) from e
        except (BSONError, TypeError, ValueError, AttributeError, KeyError) as e:
            self._catch_exception(e, message, operation, request)
        finally:
            duration_ms = (time.time() - start_time) * 1000
            record_operation(f"{self.collection_name}.{operation}", duration_ms, success)

    def _catch_exception(
        self, err: Exception, message: str, operation: str, request: Any
    ) -> NoReturn:
        """Log an unexpected failure; re-raise it raw in debug mode."""
        self.log.error(
            message,
            exc_info=err,
            extra={"operation": operation, "request": repr(request)},
        )
        if self.settings.is_debug:
            raise err
        raise UnexpectedError(
            message,
            operation=operation,
            collection=self.collection_name,
            context={"error_type": type(err).__name__},
        ) from err

    def _guard(self, value: Any, message: str, operation: str, data: Any = None) -> None:
        """Raise ``GuardViolation`` when ``value`` is empty."""
        if not is_empty(value):
            return

        error = GuardViolation(
            message,
            operation=operation,
            collection=self.collection_name,
            context={"data": repr(data)} if data is not None else None,
        )
        if not self.settings.is_debug:
            self.log.error(str(error), extra={"operation": operation})
        raise error

    def _build_model(self, form: Any, is_insert: bool | None = None) -> M:
        """Materialize a model and run its save hook when ``is_insert`` is given."""
        model = self.model_class.from_form(form)
        if is_insert is not None and isinstance(model, SaveHooked):
            model.before_save(is_insert)
        return model

    @staticmethod
    def _identity(form: Any) -> Any:
        if isinstance(form, Model):
            return form.id
        if isinstance(form, Mapping):
            for alias in ID_ALIASES:
                if form.get(alias) is not None:
                    return form[alias]
        return None

    def _resolve_query(self, model: M, form: Any) -> dict[str, Any]:
        """
        Predicate for a query form.

        An identifier in the form wins over everything else; then the
        model's ``to_query_object``; then the form's non-None fields.
        """
        identity = self._identity(form)
        if identity is not None:
            return {ID_FIELD: parse_object_id(identity)}

        if isinstance(model, QueryProjecting):
            return dict(model.to_query_object(form) or {})

        return to_simple_object(form)

    # ------------------------------------------------------------------
    # Insert / upsert
    # ------------------------------------------------------------------

    async def insert_one(self, form: Any) -> M:
        """
        Insert a document built from ``form``.

        Returns:
            The model with ``id`` set to the inserted id
        """
        model = self._build_model(form, is_insert=True)
        request_doc = model.to_insert_object()

        self._guard(request_doc, "Request document must not be empty", "insert_one", form)

        result = await self.query("insert_one", request_doc)
        model.id = result.inserted_id
        self.log.debug(f"Insert {self.collection_name} successfully. ID: {result.inserted_id}")
        return model

    async def upsert_one(self, form: Any) -> M:
        """
        Insert or update one document.

        The match condition is the upsert document's own ``$setOnInsert``
        sub-document, so the predicate and the payload cannot drift apart.

        Returns:
            The model; ``id`` is set when a new document was inserted
        """
        model, query_params, request_doc = self._prepare_upsert(form)
        return await self._issue_upsert(model, query_params, request_doc)

    def _prepare_upsert(self, form: Any) -> tuple[M, dict[str, Any], dict[str, Any]]:
        """Build the model and upsert document and run the guards. No I/O."""
        model = self._build_model(form, is_insert=True)
        request_doc = model.to_upsert_object()
        query_params = request_doc.get(SET_ON_INSERT)

        self._guard(query_params, "Query params must not be empty", "upsert_one", form)
        self._guard(request_doc, "Request document must not be empty", "upsert_one", form)
        return model, query_params, request_doc

    async def _issue_upsert(
        self, model: M, query_params: dict[str, Any], request_doc: dict[str, Any]
    ) -> M:
        result = await self.query("update_one", query_params, request_doc, upsert=True)
        if result.upserted_id is not None:
            model.id = result.upserted_id

        self.log.debug(
            f"Upsert {self.collection_name} successfully. Upserted ID: {result.upserted_id}"
        )
        return model

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    async def _update(self, func_name: str, operation: str, form: Any, query: Any) -> int:
        model = self._build_model(form, is_insert=False)
        query_params = self._resolve_query(model, query)
        request_doc = model.to_form_object()

        self._guard(query_params, "Query params must not be empty", operation, query)
        self._guard(request_doc, "Request document must not be empty", operation, form)

        result = await self.query(func_name, query_params, {"$set": request_doc})
        self.log.debug(
            f"{operation} {self.collection_name} successfully. "
            f"Modified count: {result.modified_count}"
        )
        return result.modified_count

    async def update_one(self, form: Any, query: Any) -> int:
        """
        Set the fields of ``form`` on the first document matching ``query``.

        Returns:
            Number of modified documents (0 or 1)
        """
        return await self._update("update_one", "update_one", form, query)

    async def update_many(self, form: Any, query: Any) -> int:
        """Set the fields of ``form`` on every document matching ``query``."""
        return await self._update("update_many", "update_many", form, query)

    async def update_all(self, form: Any) -> int:
        """
        Set the fields of ``form`` on every document of the collection.

        The empty predicate is intentional here; only the document is
        guarded.
        """
        model = self._build_model(form, is_insert=False)
        request_doc = model.to_form_object()

        self._guard(request_doc, "Request document must not be empty", "update_all", form)

        result = await self.query("update_many", {}, {"$set": request_doc})
        self.log.debug(
            f"Update all {self.collection_name} successfully. "
            f"Modified count: {result.modified_count}"
        )
        return result.modified_count

    async def _update_simple(self, func_name: str, operation: str, form: Any, query: Any) -> int:
        request_doc = to_simple_object(form)
        query_params = to_simple_object(query)

        self._guard(query_params, "Query params must not be empty", operation, query)
        self._guard(request_doc, "Request document must not be empty", operation, form)

        result = await self.query(func_name, query_params, {"$set": request_doc})
        self.log.debug(f"{operation} successfully. Modified count: {result.modified_count}")
        return result.modified_count

    async def update_one_simple(self, form: Any, query: Any) -> int:
        return await self._update_simple("update_one", "update_one_simple", form, query)

    async def update_many_simple(self, form: Any, query: Any) -> int:
        return await self._update_simple("update_many", "update_many_simple", form, query)

    async def update_all_simple(self, form: Any) -> int:
        request_doc = to_simple_object(form)

        self._guard(request_doc, "Request document must not be empty", "update_all_simple", form)

        result = await self.query("update_many", {}, {"$set": request_doc})
        return result.modified_count

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_one(self, form: Any, opts: dict[str, Any] | None = None) -> dict[str, Any] | None:
        """
        Find one document.

        Args:
            form: Query form (``_id`` / ``id`` selects by identifier)
            opts: Find options; ``order`` / ``sort`` fall back to the
                  model's ``default_order``

        Returns:
            The document, or None if nothing matches
        """
        model = self.model_class()
        query_params = self._resolve_query(model, form)

        self._guard(query_params, "Params must not be empty", "get_one", form)

        find_opts = build_find_options(model, dict(opts or {}))
        find_opts["sort"] = to_sort_list(find_opts["sort"])
        find_opts = {k: v for k, v in find_opts.items() if v is not None}

        result = await self.query("find_one", query_params, **find_opts)
        self.log.debug(f"GetOne {self.collection_name} successfully: {result is not None}")
        return result

    async def get_one_simple(self, form: Any) -> dict[str, Any] | None:
        query_params = to_simple_object(form)

        self._guard(query_params, "Params must not be empty", "get_one_simple", form)

        return await self.query("find_one", query_params)

    async def get_many(
        self, form: Any, opts: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """
        Find documents matching ``form``.

        Args:
            form: Query form
            opts: Optional ``order`` / ``sort``, ``skip`` and ``limit``

        Returns:
            List of documents, sorted / paged as requested
        """
        opts = dict(opts or {})
        model = self.model_class()
        query_params = self._resolve_query(model, form)

        self._guard(query_params, "Params must not be empty", "get_many", form)

        sort_options = to_sort_list(build_sort_options(model, opts))
        collection = await self.get_collection()

        async def find_many() -> list[dict[str, Any]]:
            cursor = collection.find(query_params)
            if sort_options:
                cursor = cursor.sort(sort_options)
            if opts.get("skip"):
                cursor = cursor.skip(opts["skip"])
            if opts.get("limit"):
                cursor = cursor.limit(opts["limit"])
            return await cursor.to_list(length=None)

        docs = await self._run("find", find_many, (query_params, opts))
        self.log.debug(f"GetMany {self.collection_name} successfully. Count: {len(docs)}")
        return docs

    async def get_all_condition(
        self, form: Any, opts: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        return await self.get_many(form, opts)

    async def exists(self, form: Any) -> bool:
        """True when at least one document matches ``form`` (limit-1 count)."""
        model = self.model_class()
        query_params = self._resolve_query(model, form)

        self._guard(query_params, "Params must not be empty", "exists", form)

        count = await self.query("count_documents", query_params, limit=1)
        return count > 0

    # ------------------------------------------------------------------
    # Find and modify
    # ------------------------------------------------------------------

    def _find_and_modify_options(self, opts: dict[str, Any] | None) -> dict[str, Any]:
        """Translate find options into ``findAndModify`` command fields."""
        opts = dict(opts or {})
        options: dict[str, Any] = {}

        sort = build_sort_options(self.model_class, opts)
        opts.pop("sort", None)
        if sort:
            options["sort"] = dict(sort)

        return_document = opts.pop("return_document", None)
        if return_document is not None:
            options["new"] = bool(return_document)

        projection = opts.pop("projection", None)
        if projection:
            options["fields"] = projection

        options.update(opts)
        return options

    async def _find_and_modify(
        self,
        operation: str,
        query_params: dict[str, Any],
        update: dict[str, Any],
        opts: dict[str, Any] | None,
        upsert: bool = False,
    ) -> dict[str, Any] | None:
        command = self._find_and_modify_options(opts)
        command["query"] = query_params
        command["update"] = update
        if upsert:
            command["upsert"] = True

        database = await self.connect()
        envelope = await self._run(
            operation,
            lambda: database.command(
                "findAndModify", self.collection_name, check=False, **command
            ),
            command,
        )

        log_operation(
            self.log,
            f"{self.collection_name}.{operation}",
            level=logging.DEBUG,
            success=bool(envelope.get("ok")),
        )
        if not envelope.get("ok"):
            return None
        return envelope.get("value")

    async def get_one_and_update(
        self, form: Any, query: Any, opts: dict[str, Any] | None = None
    ) -> dict[str, Any] | None:
        """
        Atomically update one document and return it.

        Returns:
            The envelope ``value`` (the document before or after the update,
            as chosen by ``return_document`` / ``new``), or None when the
            command did not succeed
        """
        model = self._build_model(form, is_insert=False)
        query_params = self._resolve_query(model, query)
        request_doc = model.to_form_object()

        self._guard(query_params, "Query params must not be empty", "get_one_and_update", query)
        self._guard(request_doc, "Request document must not be empty", "get_one_and_update", form)

        return await self._find_and_modify(
            "get_one_and_update", query_params, {"$set": request_doc}, opts
        )

    async def get_one_and_upsert(
        self, form: Any, query: Any, opts: dict[str, Any] | None = None
    ) -> dict[str, Any] | None:
        """Like ``get_one_and_update`` with the model's upsert document and ``upsert``."""
        model = self._build_model(form, is_insert=False)
        query_params = self._resolve_query(model, query)
        request_doc = model.to_upsert_object()

        self._guard(query_params, "Query params must not be empty", "get_one_and_upsert", query)
        self._guard(request_doc, "Request document must not be empty", "get_one_and_upsert", form)

        return await self._find_and_modify(
            "get_one_and_upsert", query_params, request_doc, opts, upsert=True
        )

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def delete_one(self, form: Any) -> int:
        """
        Delete the first document matching ``form``.

        Returns:
            Number of deleted documents (0 or 1)
        """
        query_params = self._resolve_query(self.model_class(), form)

        self._guard(query_params, "Params must not be empty", "delete_one", form)

        result = await self.query("delete_one", query_params)
        self.log.debug(
            f"DeleteOne {self.collection_name} successfully. Count: {result.deleted_count}"
        )
        return result.deleted_count

    async def delete_one_simple(self, form: Any) -> int:
        query_params = to_simple_object(form)

        self._guard(query_params, "Params must not be empty", "delete_one_simple", form)

        result = await self.query("delete_one", query_params)
        return result.deleted_count

    async def delete_many(self, form: Any) -> int:
        """Delete every document matching ``form``."""
        query_params = self._resolve_query(self.model_class(), form)

        self._guard(query_params, "Params must not be empty", "delete_many", form)

        result = await self.query("delete_many", query_params)
        self.log.debug(
            f"DeleteMany {self.collection_name} successfully. Count: {result.deleted_count}"
        )
        return result.deleted_count

    async def delete_many_simple(self, form: Any) -> int:
        query_params = to_simple_object(form)

        self._guard(query_params, "Params must not be empty", "delete_many_simple", form)

        result = await self.query("delete_many", query_params)
        return result.deleted_count

    async def delete_all(self) -> int:
        """Delete every document of the collection."""
        result = await self.query("delete_many", {})
        self.log.debug(
            f"DeleteAll {self.collection_name} successfully. Count: {result.deleted_count}"
        )
        return result.deleted_count
