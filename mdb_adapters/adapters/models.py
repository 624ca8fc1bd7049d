"""
Model base class and capability protocols.

A model describes one collection: its name, its default sort and how an
instance is projected into the documents each write needs. Adapters build
a fresh model from the raw input form for every call.

Two capabilities are optional and detected with ``isinstance``:

- ``QueryProjecting``: the model turns a query form into a predicate
  itself (``to_query_object``).
- ``SaveHooked``: the model wants a ``before_save(is_insert)`` hook.

Example:
    @dataclass
    class Driver(Model):
        collection_name: ClassVar[str] = "drivers"
        default_order: ClassVar[str] = "-updated_at"
        upsert_keys: ClassVar[tuple[str, ...]] = ("user_id",)

        user_id: str | None = None
        status: int | None = None
        updated_at: datetime | None = None

        def before_save(self, is_insert: bool) -> None:
            self.updated_at = datetime.now(timezone.utc)
"""

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar, Protocol, TypeVar, runtime_checkable

from bson import ObjectId

from ..constants import ID_FIELD, SET_ON_INSERT

M = TypeVar("M", bound="Model")


def is_empty(value: Any) -> bool:
    """True for ``None`` and for empty mappings / sequences / strings."""
    if value is None:
        return True
    try:
        return len(value) == 0
    except TypeError:
        return False


def parse_object_id(value: Any) -> Any:
    """Convert a 24-char hex string to ``ObjectId``; leave anything else as is."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


def to_simple_object(form: Any) -> dict[str, Any]:
    """
    Shallow copy of the non-``None`` fields of a form.

    Accepts a mapping, a ``Model`` (its ``id`` becomes ``_id``) or ``None``.
    """
    if form is None:
        return {}
    if isinstance(form, Model):
        form = form.to_document()
    if not isinstance(form, Mapping):
        raise TypeError(f"Expected a mapping or Model, got {type(form).__name__}")
    return {key: value for key, value in form.items() if value is not None}


@runtime_checkable
class QueryProjecting(Protocol):
    """Model that builds its own query predicate from a form."""

    def to_query_object(self, form: Any) -> dict[str, Any] | None: ...


@runtime_checkable
class SaveHooked(Protocol):
    """Model with a lifecycle hook run before insert / update / upsert."""

    def before_save(self, is_insert: bool) -> None: ...


@dataclass
class Model:
    """
    Base class for collection models.

    Subclasses are dataclasses whose fields all have defaults, and must set
    ``collection_name``; leaving it out raises ``TypeError`` when the class
    is defined. Intermediate bases pass ``abstract=True``:

        @dataclass
        class Located(Model, abstract=True):
            location: dict | None = None
    """

    collection_name: ClassVar[str]
    default_order: ClassVar[Any] = None
    upsert_keys: ClassVar[tuple[str, ...]] = ()

    id: Any = None

    def __init_subclass__(cls, abstract: bool = False, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if not abstract and not getattr(cls, "collection_name", None):
            raise TypeError(f"{cls.__name__} must define a collection_name")

    @classmethod
    def field_names(cls) -> set[str]:
        return {f.name for f in dataclasses.fields(cls)}

    @classmethod
    def from_form(cls: type[M], form: Any = None) -> M:
        """
        Build a model from a raw form, ignoring unknown keys.

        ``_id`` in the form is mapped to ``id``.
        """
        if form is None:
            return cls()
        if isinstance(form, Model):
            form = form.to_dict()
        data = dict(form)
        if ID_FIELD in data:
            data["id"] = data.pop(ID_FIELD)

        names = cls.field_names()
        return cls(**{k: v for k, v in data.items() if k in names})

    def to_dict(self) -> dict[str, Any]:
        """All fields, including ``None`` values, keyed by attribute name."""
        return {f.name: getattr(self, f.name) for f in dataclasses.fields(self)}

    def to_document(self) -> dict[str, Any]:
        """Non-``None`` fields with ``id`` stored as ``_id``."""
        doc: dict[str, Any] = {}
        for key, value in self.to_dict().items():
            if value is None:
                continue
            if key == "id":
                doc[ID_FIELD] = parse_object_id(value)
            else:
                doc[key] = value
        return doc

    def to_insert_object(self) -> dict[str, Any]:
        """Document written by ``insert_one``."""
        return self.to_document()

    def to_form_object(self) -> dict[str, Any]:
        """Fields written under ``$set`` by updates (never ``_id``)."""
        doc = self.to_document()
        doc.pop(ID_FIELD, None)
        return doc

    def to_upsert_object(self) -> dict[str, Any]:
        """
        Upsert document: ``upsert_keys`` go under ``$setOnInsert`` (which is
        also the match condition), every other field under ``$set``.
        """
        on_insert: dict[str, Any] = {}
        fields: dict[str, Any] = {}
        for key, value in self.to_form_object().items():
            if key in self.upsert_keys:
                on_insert[key] = value
            else:
                fields[key] = value

        upsert: dict[str, Any] = {SET_ON_INSERT: on_insert}
        if fields:
            upsert["$set"] = fields
        return upsert
