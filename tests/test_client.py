"""Firestore REST client with a mocked aiohttp session."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from classledger.client import FirestoreClient, decode_fields, encode_fields, parse_timestamp
from classledger.config import LedgerConfig
from classledger.exceptions import StoreAPIError, StoreConnectionError, StoreDataError
from classledger.models import AttendanceStatus

CONFIG = LedgerConfig(project_id="demo", id_token="token-123")
ROOT = "projects/demo/databases/(default)/documents"
BASE = f"https://firestore.googleapis.com/v1/{ROOT}"


def _response(status=200, payload=None, text=""):
	resp = MagicMock()
	resp.status = status
	resp.json = AsyncMock(return_value=payload)
	resp.text = AsyncMock(return_value=text)
	context = MagicMock()
	context.__aenter__ = AsyncMock(return_value=resp)
	context.__aexit__ = AsyncMock(return_value=False)
	return context


def _client(*responses):
	session = MagicMock()
	session.request = MagicMock(side_effect=list(responses))
	return FirestoreClient(CONFIG, session=session), session


def _document(doc_id, fields):
	return {
		"name": f"{ROOT}/attendance/{doc_id}",
		"fields": encode_fields(fields),
		"createTime": "2024-03-05T10:00:00.123456789Z",
		"updateTime": "2024-03-05T10:00:00.123456789Z",
	}


def test_values_survive_encoding():
	stamp = datetime(2024, 3, 5, 10, 0, tzinfo=timezone.utc)
	data = {
		"classId": "10A",
		"records": {"S1": AttendanceStatus.PRESENT},
		"maxScore": 50,
		"locked": False,
		"subjects": ["Maths", "Physics"],
		"createdAt": stamp,
		"teacherId": None,
	}
	encoded = encode_fields(data)

	assert encoded["maxScore"] == {"integerValue": "50"}
	assert encoded["locked"] == {"booleanValue": False}
	assert encoded["records"]["mapValue"]["fields"]["S1"] == {"stringValue": "Present"}
	assert decode_fields(encoded) == {**data, "records": {"S1": "Present"}}


def test_unsupported_values_raise():
	with pytest.raises(StoreDataError):
		encode_fields({"bad": object()})


def test_nanosecond_timestamps_are_truncated():
	stamp = parse_timestamp("2024-03-05T10:00:00.123456789Z")
	assert stamp == datetime(2024, 3, 5, 10, 0, 0, 123456, tzinfo=timezone.utc)


async def test_query_builds_equality_filters():
	client, session = _client(_response(payload=[
		{"document": _document("abc", {"classId": "10A", "subject": "Maths"})},
		{"readTime": "2024-03-05T10:00:00Z"},
	]))

	documents = await client.query("attendance", {"classId": "10A", "subject": "Maths"})

	assert [d.id for d in documents] == ["abc"]
	assert documents[0].data == {"classId": "10A", "subject": "Maths"}
	method, url = session.request.call_args.args
	assert (method, url) == ("POST", f"{BASE}:runQuery")
	kwargs = session.request.call_args.kwargs
	assert kwargs["headers"]["Authorization"] == "Bearer token-123"
	where = kwargs["json"]["structuredQuery"]["where"]["compositeFilter"]
	assert where["op"] == "AND"
	assert where["filters"][0]["fieldFilter"]["value"] == {"stringValue": "10A"}


async def test_single_filter_is_not_composite():
	client, session = _client(_response(payload=[]))
	await client.query("users", {"role": "student"})

	where = session.request.call_args.kwargs["json"]["structuredQuery"]["where"]
	assert where["fieldFilter"]["field"] == {"fieldPath": "role"}


async def test_get_missing_document_returns_none():
	client, _ = _client(_response(status=404))
	assert await client.get("users", "nobody") is None


async def test_http_errors_raise_api_error():
	client, _ = _client(_response(status=403, text="PERMISSION_DENIED"))
	with pytest.raises(StoreAPIError) as excinfo:
		await client.query("attendance", {"classId": "10A"})
	assert excinfo.value.status == 403


async def test_connection_errors_are_wrapped():
	session = MagicMock()
	session.request = MagicMock(side_effect=aiohttp.ClientConnectionError("down"))
	client = FirestoreClient(CONFIG, session=session)

	with pytest.raises(StoreConnectionError):
		await client.get("users", "T1")


async def test_create_commits_with_server_timestamps():
	created = _document("new", {"classId": "10A"})
	client, session = _client(_response(payload={"writeResults": [{}]}), _response(payload=created))

	document = await client.create("attendance", {"classId": "10A"})

	assert document.id == "new"
	commit_call, get_call = session.request.call_args_list
	assert commit_call.args == ("POST", f"{BASE}:commit")
	write = commit_call.kwargs["json"]["writes"][0]
	assert write["currentDocument"] == {"exists": False}
	assert {t["fieldPath"] for t in write["updateTransforms"]} == {"createdAt", "updatedAt"}
	doc_id = write["update"]["name"].rsplit("/", 1)[-1]
	assert get_call.args == ("GET", f"{BASE}/attendance/{doc_id}")


async def test_update_masks_written_fields():
	updated = _document("abc", {"records": {"S1": "Absent"}})
	client, session = _client(_response(payload={"writeResults": [{}]}), _response(payload=updated))

	document = await client.update("attendance", "abc", {"records": {"S1": "Absent"}})

	assert document.data["records"] == {"S1": "Absent"}
	write = session.request.call_args_list[0].kwargs["json"]["writes"][0]
	assert write["update"]["name"] == f"{ROOT}/attendance/abc"
	assert write["updateMask"] == {"fieldPaths": ["records"]}
	assert write["currentDocument"] == {"exists": True}
	assert [t["fieldPath"] for t in write["updateTransforms"]] == ["updatedAt"]


async def test_context_manager_owns_session():
	async with FirestoreClient(CONFIG) as client:
		assert isinstance(client._session, aiohttp.ClientSession)
	assert client._session.closed


async def test_unentered_client_refuses_requests():
	client = FirestoreClient(CONFIG)
	with pytest.raises(StoreConnectionError):
		await client.get("users", "T1")
