"""
Profile store interface and the in-memory adapter.

The service receives a store instance at construction time instead of
reaching for a module-level database client. Any document database can be
plugged in by implementing ``ProfileStore``.
"""

from __future__ import annotations

import copy
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .models import ProfileRecord

logger = logging.getLogger(__name__)


class ProfileNotFoundError(KeyError):
    """Raised when an update targets a profile code that does not exist."""


class ProfileStore(ABC):
    """Repository for profile documents keyed by pin code."""

    @abstractmethod
    def get(self, code: str) -> Optional[ProfileRecord]:
        """Return the profile for ``code``, or None when absent."""

    @abstractmethod
    def list_profiles(self) -> List[ProfileRecord]:
        """Return every readable profile document; unreadable ones are skipped."""

    @abstractmethod
    def put(self, code: str, data: Dict[str, Any]) -> ProfileRecord:
        """
        Create or overwrite the document for ``code``.

        Raises:
            pydantic.ValidationError: ``data`` is not a valid profile
        """

    @abstractmethod
    def merge(self, code: str, data: Dict[str, Any]) -> ProfileRecord:
        """
        Merge ``data`` into the document for ``code``, creating it if needed.

        Raises:
            pydantic.ValidationError: the merged document is not a valid profile
        """

    @abstractmethod
    def increment(self, code: str, field: str, amount: int = 1) -> ProfileRecord:
        """
        Add ``amount`` to a numeric field of an existing document.

        Raises:
            ProfileNotFoundError: no document exists for ``code``
        """


class InMemoryProfileStore(ProfileStore):
    """
    Dict-backed store; documents keep insertion order.

    Writes are validated as a ``ProfileRecord`` before they are committed, so
    a rejected write leaves the stored document untouched.
    """

    def __init__(self, documents: Optional[Dict[str, Dict[str, Any]]] = None):
        self._docs: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        for code, data in (documents or {}).items():
            self.put(code, data)

    @staticmethod
    def _validate(code: str, doc: Dict[str, Any]) -> ProfileRecord:
        return ProfileRecord.from_document(code, copy.deepcopy(doc))

    def _record(self, code: str) -> ProfileRecord:
        return self._validate(code, self._docs[code])

    def get(self, code: str) -> Optional[ProfileRecord]:
        with self._lock:
            if code not in self._docs:
                return None
            return self._record(code)

    def list_profiles(self) -> List[ProfileRecord]:
        records = []
        with self._lock:
            for code in self._docs:
                try:
                    records.append(self._record(code))
                except ValidationError as e:
                    logger.warning(
                        "Skipping invalid profile %s (%d errors)", code, e.error_count()
                    )
        return records

    def put(self, code: str, data: Dict[str, Any]) -> ProfileRecord:
        doc = dict(data)
        record = self._validate(code, doc)
        with self._lock:
            self._docs[code] = doc
        return record

    def merge(self, code: str, data: Dict[str, Any]) -> ProfileRecord:
        with self._lock:
            doc = {**self._docs.get(code, {}), **data}
            record = self._validate(code, doc)
            self._docs[code] = doc
            return record

    def increment(self, code: str, field: str, amount: int = 1) -> ProfileRecord:
        with self._lock:
            if code not in self._docs:
                raise ProfileNotFoundError(code)
            doc = self._docs[code]
            current = doc.get(field) or 0
            if not isinstance(current, (int, float)) or isinstance(current, bool):
                logger.warning(
                    "Resetting non-numeric counter %s=%r on %s", field, current, code
                )
                current = 0
            doc[field] = current + amount
            return self._record(code)
