"""
Persistence of named collections.
Services depend on the Repository interface only; the SQL store keeps each
collection as one JSON blob, the same way the browser kept them.
"""

import copy
import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import sessionmaker

from tilequote.core.database import get_session_factory, init_db
from tilequote.core.logging_config import log_database_operation
from tilequote.core.models import Collection, StoredCollection

Record = Dict[str, Any]


class Repository(ABC):
    """Load and save whole collections of JSON-compatible records."""

    @abstractmethod
    def load(self, collection: Collection) -> List[Record]:
        """Return the records of a collection (empty list when never saved)."""
        raise NotImplementedError

    @abstractmethod
    def save(self, collection: Collection, records: List[Record]) -> None:
        """Replace the records of a collection."""
        raise NotImplementedError


class InMemoryRepository(Repository):
    """Repository backed by a dict; records are copied in and out."""

    def __init__(self, initial: Optional[Dict[Collection, List[Record]]] = None):
        self._data: Dict[Collection, List[Record]] = {}
        for collection, records in (initial or {}).items():
            self.save(collection, records)

    def load(self, collection: Collection) -> List[Record]:
        records = copy.deepcopy(self._data.get(collection, []))
        log_database_operation("load", collection.value, len(records))
        return records

    def save(self, collection: Collection, records: List[Record]) -> None:
        self._data[collection] = copy.deepcopy(list(records))
        log_database_operation("save", collection.value, len(records))


class SqlRepository(Repository):
    """Repository storing each collection as a JSON row through SQLAlchemy."""

    def __init__(self, session_factory: Optional[sessionmaker] = None, create_tables: bool = True):
        self._session_factory = session_factory or get_session_factory()
        if create_tables:
            init_db(self._session_factory)

    def load(self, collection: Collection) -> List[Record]:
        session = self._session_factory()
        try:
            row = session.get(StoredCollection, collection.value)
            records = json.loads(row.payload) if row else []
            log_database_operation("load", collection.value, len(records))
            return records
        finally:
            session.close()

    def save(self, collection: Collection, records: List[Record]) -> None:
        payload = json.dumps(list(records), ensure_ascii=False, default=str)
        session = self._session_factory()
        try:
            row = session.get(StoredCollection, collection.value)
            if row is None:
                row = StoredCollection(name=collection.value, payload=payload)
                session.add(row)
            else:
                row.payload = payload
            session.commit()
            log_database_operation("save", collection.value, len(records))
        finally:
            session.close()

    def collection_names(self) -> List[str]:
        session = self._session_factory()
        try:
            return [row.name for row in session.query(StoredCollection).order_by(StoredCollection.name)]
        finally:
            session.close()
