"""Async client for the Cloud Firestore REST API."""

import asyncio
import json
import logging
import re
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

import aiohttp

from .config import LedgerConfig
from .const import FIELD_CREATED_AT, FIELD_UPDATED_AT, FIRESTORE_BASE_URL
from .exceptions import StoreAPIError, StoreConnectionError, StoreDataError
from .store import Document, DocumentStore

_LOGGER = logging.getLogger(__name__)

DEFAULT_HEADERS = {
	"Accept": "application/json",
	"Content-Type": "application/json; charset=UTF-8",
}

_FRACTION = re.compile(r"\.(\d+)")


def encode_value(value: Any) -> Dict[str, Any]:
	"""Encode a Python value as a Firestore typed value."""
	if value is None:
		return {"nullValue": None}
	if isinstance(value, Enum):
		value = value.value
	# bool before int: bool is an int subclass
	if isinstance(value, bool):
		return {"booleanValue": value}
	if isinstance(value, int):
		return {"integerValue": str(value)}
	if isinstance(value, float):
		return {"doubleValue": value}
	if isinstance(value, str):
		return {"stringValue": value}
	if isinstance(value, datetime):
		if value.tzinfo is None:
			value = value.replace(tzinfo=timezone.utc)
		stamp = value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
		return {"timestampValue": stamp}
	if isinstance(value, Mapping):
		return {"mapValue": {"fields": encode_fields(value)}}
	if isinstance(value, (list, tuple)):
		return {"arrayValue": {"values": [encode_value(item) for item in value]}}
	raise StoreDataError(f"Cannot encode value of type {type(value).__name__}")


def encode_fields(data: Mapping[str, Any]) -> Dict[str, Any]:
	return {str(name): encode_value(value) for name, value in data.items()}


def parse_timestamp(value: str) -> datetime:
	"""Parse an RFC 3339 timestamp; nanosecond precision is truncated."""
	text = value.replace("Z", "+00:00")
	text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
	try:
		return datetime.fromisoformat(text)
	except ValueError as e:
		raise StoreDataError(f"Invalid timestamp: {value!r}") from e


def decode_value(value: Mapping[str, Any]) -> Any:
	"""Decode a Firestore typed value into a Python value."""
	if "nullValue" in value:
		return None
	if "booleanValue" in value:
		return bool(value["booleanValue"])
	if "integerValue" in value:
		return int(value["integerValue"])
	if "doubleValue" in value:
		return float(value["doubleValue"])
	if "stringValue" in value:
		return value["stringValue"]
	if "timestampValue" in value:
		return parse_timestamp(value["timestampValue"])
	if "mapValue" in value:
		return decode_fields(value["mapValue"].get("fields", {}))
	if "arrayValue" in value:
		return [decode_value(item) for item in value["arrayValue"].get("values", [])]
	if "referenceValue" in value:
		return value["referenceValue"]
	raise StoreDataError(f"Unsupported Firestore value: {list(value)}")


def decode_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
	return {name: decode_value(value) for name, value in fields.items()}


class FirestoreClient(DocumentStore):
	"""Document store backed by Firestore's REST endpoints."""

	def __init__(self, config: LedgerConfig, session: Optional[aiohttp.ClientSession] = None):
		"""Initialise Firestore client.

		Args:
			config: Validated ledger configuration.
			session: Optional aiohttp session. If None, one is created on entry.
		"""
		self.config = config
		self._session = session
		self._own_session = session is None
		self._base = (
			f"{FIRESTORE_BASE_URL}/projects/{config.project_id}"
			f"/databases/{config.database}/documents"
		)

	async def __aenter__(self):
		"""Async context manager entry."""
		if self._own_session:
			self._session = aiohttp.ClientSession(
				timeout=aiohttp.ClientTimeout(total=self.config.timeout)
			)
		return self

	async def __aexit__(self, exc_type, exc_val, exc_tb):
		"""Async context manager exit."""
		if self._own_session and self._session:
			await self._session.close()

	@property
	def documents_root(self) -> str:
		"""Resource name prefix of every document in the database."""
		return f"projects/{self.config.project_id}/databases/{self.config.database}/documents"

	def _headers(self) -> Dict[str, str]:
		headers = DEFAULT_HEADERS.copy()
		if self.config.id_token:
			headers["Authorization"] = f"Bearer {self.config.id_token}"
		return headers

	def _ensure_session(self) -> aiohttp.ClientSession:
		if self._session is None:
			raise StoreConnectionError("Client not properly initialised")
		return self._session

	async def _request(self, method: str, url: str, payload: Optional[dict] = None, allow_missing: bool = False) -> Any:
		session = self._ensure_session()
		_LOGGER.debug(f"{method} {url}")
		try:
			async with session.request(method, url, headers=self._headers(), json=payload) as resp:
				if allow_missing and resp.status == 404:
					return None
				if resp.status != 200:
					text = await resp.text()
					raise StoreAPIError(f"{method} {url} failed: HTTP {resp.status} {text[:200]}", status=resp.status)
				try:
					return await resp.json()
				except (aiohttp.ContentTypeError, json.JSONDecodeError) as e:
					raise StoreDataError(f"Invalid JSON response from {url}") from e
		except aiohttp.ClientError as e:
			raise StoreConnectionError(f"Connection error: {e}") from e
		except asyncio.TimeoutError as e:
			raise StoreConnectionError(f"Request timed out: {method} {url}") from e

	def _parse_document(self, payload: Mapping[str, Any]) -> Document:
		try:
			name = payload["name"]
		except KeyError as e:
			raise StoreDataError("Document payload without a name") from e
		doc_id = name.rsplit("/", 1)[-1]
		create_time = payload.get("createTime")
		update_time = payload.get("updateTime")
		return Document(
			id=doc_id,
			data=decode_fields(payload.get("fields", {})),
			create_time=parse_timestamp(create_time) if create_time else None,
			update_time=parse_timestamp(update_time) if update_time else None,
		)

	def _structured_query(self, collection: str, filters: Mapping[str, Any]) -> Dict[str, Any]:
		field_filters = [
			{
				"fieldFilter": {
					"field": {"fieldPath": name},
					"op": "EQUAL",
					"value": encode_value(value),
				}
			}
			for name, value in filters.items()
		]
		query: Dict[str, Any] = {"from": [{"collectionId": collection}]}
		if len(field_filters) == 1:
			query["where"] = field_filters[0]
		elif field_filters:
			query["where"] = {"compositeFilter": {"op": "AND", "filters": field_filters}}
		return {"structuredQuery": query}

	async def get(self, collection: str, doc_id: str) -> Optional[Document]:
		payload = await self._request("GET", f"{self._base}/{collection}/{doc_id}", allow_missing=True)
		return self._parse_document(payload) if payload is not None else None

	async def query(self, collection: str, filters: Mapping[str, Any]) -> List[Document]:
		payload = await self._request("POST", f"{self._base}:runQuery", self._structured_query(collection, filters))
		if not isinstance(payload, list):
			raise StoreDataError(f"Unexpected runQuery response: {type(payload).__name__}")
		documents = [self._parse_document(item["document"]) for item in payload if "document" in item]
		_LOGGER.debug(f"Query on {collection} {dict(filters)} returned {len(documents)} document(s)")
		return documents

	async def _commit_write(self, write: Dict[str, Any]) -> None:
		await self._request("POST", f"{self._base}:commit", {"writes": [write]})

	async def create(self, collection: str, data: Mapping[str, Any]) -> Document:
		doc_id = uuid.uuid4().hex[:20]
		await self._commit_write({
			"update": {
				"name": f"{self.documents_root}/{collection}/{doc_id}",
				"fields": encode_fields(data),
			},
			"currentDocument": {"exists": False},
			"updateTransforms": [
				{"fieldPath": FIELD_CREATED_AT, "setToServerValue": "REQUEST_TIME"},
				{"fieldPath": FIELD_UPDATED_AT, "setToServerValue": "REQUEST_TIME"},
			],
		})
		created = await self.get(collection, doc_id)
		if created is None:
			raise StoreDataError(f"Created document {collection}/{doc_id} not readable")
		return created

	async def update(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> Document:
		await self._commit_write({
			"update": {
				"name": f"{self.documents_root}/{collection}/{doc_id}",
				"fields": encode_fields(data),
			},
			"updateMask": {"fieldPaths": list(data)},
			"currentDocument": {"exists": True},
			"updateTransforms": [
				{"fieldPath": FIELD_UPDATED_AT, "setToServerValue": "REQUEST_TIME"},
			],
		})
		updated = await self.get(collection, doc_id)
		if updated is None:
			raise StoreDataError(f"Updated document {collection}/{doc_id} not readable")
		return updated
