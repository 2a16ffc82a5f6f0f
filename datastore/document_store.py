from __future__ import annotations
import json
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Generic, Iterable, Mapping, Optional, Type, TypeVar

from bson import ObjectId
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from settings import get_settings

DocumentT = TypeVar("DocumentT", bound=BaseModel)

_CLOCK_STEP = timedelta(microseconds=1)


class StoreError(Exception):
    """Base class for failures raised by the document store."""


class InvalidIdentifier(StoreError):
    """An identifier does not have the store's identifier format."""


class DocumentCastError(StoreError):
    """A document could not be coerced into its collection's model."""


class StoreUnavailable(StoreError):
    """The backing persistence could not be read or written."""


def new_identifier() -> str:
    return str(ObjectId())


def is_valid_identifier(value: Any) -> bool:
    """Return True for 24 character hexadecimal identifier strings."""
    return isinstance(value, str) and ObjectId.is_valid(value)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _cast_message(collection: str, exc: PydanticValidationError) -> str:
    details = "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or 'document'}: {error['msg']}"
        for error in exc.errors()
    )
    return f"{collection} validation failed: {details}"


class DocumentCollection(Generic[DocumentT]):
    """A named set of documents keyed by identifier.

    Every operation touches a single document under the collection lock, so
    reads never observe a half-applied write.
    """

    def __init__(
        self,
        name: str,
        model: Type[DocumentT],
        persistence_path: Optional[Path] = None,
    ) -> None:
        self.name = name
        self.model = model
        self.persistence_path = persistence_path
        self._documents: Dict[str, DocumentT] = {}
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def insert_one(self, fields: Mapping[str, Any]) -> DocumentT:
        document = self._cast({**fields, "id": new_identifier()})
        with self._lock:
            documents = dict(self._documents)
            documents[self._key(document)] = document
            self._commit(documents)
            return document.model_copy(deep=True)

    def find(self, criteria: Optional[Mapping[str, Any]] = None) -> list[DocumentT]:
        """Return copies of every document whose fields equal ``criteria``."""

        with self._lock:
            documents = list(self._documents.values())
        return [
            document.model_copy(deep=True)
            for document in documents
            if self._matches(document, criteria)
        ]

    def find_by_id(self, document_id: str) -> Optional[DocumentT]:
        self._check_identifier(document_id)
        with self._lock:
            document = self._documents.get(document_id)
            if document is None:
                return None
            return document.model_copy(deep=True)

    def find_by_id_and_update(
        self,
        document_id: str,
        changes: Mapping[str, Any],
        current_date: Iterable[str] = (),
    ) -> Optional[DocumentT]:
        """Apply ``changes`` and return the updated document.

        Fields named in ``current_date`` are set to the current time, moved
        forward when needed so that they always increase.
        """
        self._check_identifier(document_id)
        with self._lock:
            existing = self._documents.get(document_id)
            if existing is None:
                return None
            merged = existing.model_dump(by_alias=True)
            merged.update(changes)
            now = _utcnow()
            for field in current_date:
                previous = merged.get(field)
                if isinstance(previous, datetime) and previous >= now:
                    merged[field] = previous + _CLOCK_STEP
                else:
                    merged[field] = now
            merged["id"] = document_id
            document = self._cast(merged)
            documents = dict(self._documents)
            documents[document_id] = document
            self._commit(documents)
            return document.model_copy(deep=True)

    def find_by_id_and_delete(self, document_id: str) -> Optional[DocumentT]:
        self._check_identifier(document_id)
        with self._lock:
            if document_id not in self._documents:
                return None
            documents = dict(self._documents)
            removed = documents.pop(document_id)
            self._commit(documents)
            return removed

    def count(self) -> int:
        with self._lock:
            return len(self._documents)

    def _cast(self, payload: Mapping[str, Any]) -> DocumentT:
        try:
            return self.model.model_validate(payload)
        except PydanticValidationError as exc:
            raise DocumentCastError(_cast_message(self.name, exc)) from exc

    @staticmethod
    def _key(document: BaseModel) -> str:
        return getattr(document, "id")

    @staticmethod
    def _matches(document: BaseModel, criteria: Optional[Mapping[str, Any]]) -> bool:
        if not criteria:
            return True
        values = document.model_dump(by_alias=True)
        return all(values.get(field) == expected for field, expected in criteria.items())

    def _check_identifier(self, document_id: str) -> None:
        if not is_valid_identifier(document_id):
            raise InvalidIdentifier(
                f"Cast to ObjectId failed for value {document_id!r} in collection {self.name!r}."
            )

    def _commit(self, documents: Dict[str, DocumentT]) -> None:
        self._persist(documents)
        self._documents = documents

    def _persist(self, documents: Dict[str, DocumentT]) -> None:
        if not self.persistence_path:
            return
        payload = [document.model_dump(mode="json", by_alias=True) for document in documents.values()]
        try:
            self.persistence_path.write_text(json.dumps(payload, indent=2))
        except OSError as exc:
            raise StoreUnavailable(
                f"Could not write collection {self.name!r} to {self.persistence_path}: {exc}"
            ) from exc

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "[]"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreUnavailable(
                f"Could not load collection {self.name!r} from {self.persistence_path}: {exc}"
            ) from exc

        for payload in data:
            document = self._cast(payload)
            self._documents[self._key(document)] = document


class DocumentStore:
    """Named database holding lazily opened collections."""

    def __init__(self, name: str, persistence_dir: Optional[Path] = None) -> None:
        self.name = name
        self.persistence_dir = persistence_dir
        self._collections: Dict[str, DocumentCollection[Any]] = {}
        self._lock = Lock()
        if persistence_dir:
            try:
                persistence_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StoreUnavailable(
                    f"Could not open store {name!r} at {persistence_dir}: {exc}"
                ) from exc

    def collection(self, name: str, model: Type[DocumentT]) -> DocumentCollection[DocumentT]:
        with self._lock:
            existing = self._collections.get(name)
            if existing is not None:
                if existing.model is not model:
                    raise StoreError(
                        f"Collection {name!r} is already bound to {existing.model.__name__}."
                    )
                return existing
            path = self.persistence_dir / f"{name}.json" if self.persistence_dir else None
            created = DocumentCollection(name=name, model=model, persistence_path=path)
            self._collections[name] = created
            return created

    def collection_names(self) -> list[str]:
        with self._lock:
            return sorted(self._collections)


@lru_cache
def build_default_store(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> DocumentStore:
    settings = get_settings()
    store_name = settings.store_name if name is None else name
    store_path = settings.store_persistence_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return DocumentStore(name=store_name, persistence_dir=persistence)
