"""Document store interface and an in-memory implementation."""

import asyncio
import copy
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional

from .const import FIELD_CREATED_AT, FIELD_UPDATED_AT
from .exceptions import StoreAPIError

_LOGGER = logging.getLogger(__name__)


@dataclass
class Document:
	"""A stored document: its id within the collection and its fields."""
	id: str
	data: Dict[str, Any] = field(default_factory=dict)
	create_time: Optional[datetime] = None
	update_time: Optional[datetime] = None

	def get(self, name: str, default: Any = None) -> Any:
		return self.data.get(name, default)


class DocumentStore(ABC):
	"""Async access to a hosted document database.

	Implementations stamp FIELD_CREATED_AT on create and FIELD_UPDATED_AT on
	every write with the server's clock.
	"""

	@abstractmethod
	async def get(self, collection: str, doc_id: str) -> Optional[Document]:
		"""Fetch one document by id, or None if it does not exist."""

	@abstractmethod
	async def query(self, collection: str, filters: Mapping[str, Any]) -> List[Document]:
		"""Return all documents whose fields equal every value in filters."""

	@abstractmethod
	async def create(self, collection: str, data: Mapping[str, Any]) -> Document:
		"""Create a document with a generated id."""

	@abstractmethod
	async def update(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> Document:
		"""Overwrite the given top-level fields of an existing document."""


class InMemoryDocumentStore(DocumentStore):
	"""Process-local document store.

	Useful for local runs and tests. Stored data is deep-copied in and out so
	callers never share mutable state with the store.
	"""

	def __init__(self) -> None:
		self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
		self._lock = asyncio.Lock()
		self._last_stamp: Optional[datetime] = None

	def _now(self) -> datetime:
		# Timestamps must strictly increase for read-your-writes ordering
		now = datetime.now(timezone.utc)
		if self._last_stamp is not None and now <= self._last_stamp:
			now = self._last_stamp + timedelta(microseconds=1)
		self._last_stamp = now
		return now

	def seed(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
		"""Insert a document verbatim, without timestamps."""
		self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(dict(data))

	def documents(self, collection: str) -> List[Document]:
		"""Snapshot of every document in a collection."""
		return [
			Document(id=doc_id, data=copy.deepcopy(data))
			for doc_id, data in self._collections.get(collection, {}).items()
		]

	def _to_document(self, doc_id: str, data: Dict[str, Any]) -> Document:
		return Document(
			id=doc_id,
			data=copy.deepcopy(data),
			create_time=data.get(FIELD_CREATED_AT),
			update_time=data.get(FIELD_UPDATED_AT),
		)

	async def get(self, collection: str, doc_id: str) -> Optional[Document]:
		async with self._lock:
			data = self._collections.get(collection, {}).get(doc_id)
			return self._to_document(doc_id, data) if data is not None else None

	async def query(self, collection: str, filters: Mapping[str, Any]) -> List[Document]:
		async with self._lock:
			return [
				self._to_document(doc_id, data)
				for doc_id, data in self._collections.get(collection, {}).items()
				if all(data.get(name) == value for name, value in filters.items())
			]

	async def create(self, collection: str, data: Mapping[str, Any]) -> Document:
		async with self._lock:
			doc_id = uuid.uuid4().hex
			now = self._now()
			stored = copy.deepcopy(dict(data))
			stored[FIELD_CREATED_AT] = now
			stored[FIELD_UPDATED_AT] = now
			self._collections.setdefault(collection, {})[doc_id] = stored
			_LOGGER.debug(f"Created {collection}/{doc_id}")
			return self._to_document(doc_id, stored)

	async def update(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> Document:
		async with self._lock:
			stored = self._collections.get(collection, {}).get(doc_id)
			if stored is None:
				raise StoreAPIError(f"No document to update: {collection}/{doc_id}", status=404)
			stored.update(copy.deepcopy(dict(data)))
			stored[FIELD_UPDATED_AT] = self._now()
			_LOGGER.debug(f"Updated {collection}/{doc_id}")
			return self._to_document(doc_id, stored)
