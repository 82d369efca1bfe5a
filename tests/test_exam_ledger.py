"""Exam score sessions: score entry, validation gate and immutable details."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from classledger.exceptions import InvalidStateError, SessionLockedError, SessionValidationError
from classledger.ledger import SessionLedger, parse_score_input
from classledger.models import ExamDetails, SessionKind, SessionState

DAY = date(2024, 4, 1)
UNIT_TEST = ExamDetails(title="Unit Test", max_score=50)


async def test_draft_starts_blank_with_default_max(exam_ledger):
	session = await exam_ledger.load_session("10A", "Physics", DAY)

	assert session.state is SessionState.DRAFT
	assert session.entries == {"S1": None, "S2": None, "S3": None}
	assert session.details == ExamDetails(title="", max_score=100)


@pytest.mark.parametrize("raw, expected", [
	("42", 42),
	("4a2", 42),
	(" 7 ", 7),
	("", None),
	(None, None),
	(0, 0),
])
def test_score_input_keeps_digits_only(raw, expected):
	assert parse_score_input(raw) == expected


def test_negative_scores_are_rejected():
	with pytest.raises(SessionValidationError):
		parse_score_input(-3)


async def test_scores_above_max_are_kept_and_flagged(exam_ledger):
	session = await exam_ledger.load_session("10A", "Physics", DAY)
	session.set_exam_details("Unit Test", 50)

	assert session.set_score("S1", "55") == 55
	session.set_score("S2", 40)

	assert session.entry("S1") == 55
	assert session.invalid_student_ids() == ["S1"]


async def test_over_max_blocks_commit_without_touching_store(roster):
	store = MagicMock()
	store.query = AsyncMock(return_value=[])
	store.create = AsyncMock()
	store.update = AsyncMock()
	ledger = SessionLedger(store, roster, SessionKind.EXAM_SCORE, owner_id="T1")

	session = await ledger.load_session("10A", "Physics", DAY)
	store.query.reset_mock()
	session.set_score("S1", 55)

	with pytest.raises(SessionValidationError) as excinfo:
		await ledger.commit(session, UNIT_TEST)

	assert "exceed" in str(excinfo.value)
	assert excinfo.value.student_ids == ["S1"]
	assert session.state is SessionState.DRAFT
	store.query.assert_not_awaited()
	store.create.assert_not_awaited()
	store.update.assert_not_awaited()


async def test_failed_validation_leaves_date_unmarked(exam_ledger):
	session = await exam_ledger.load_session("10A", "Physics", DAY)
	session.set_score("S1", 55)

	with pytest.raises(SessionValidationError):
		await exam_ledger.commit(session, UNIT_TEST)

	assert DAY not in await exam_ledger.get_marked_dates("10A", "Physics")


@pytest.mark.parametrize("details, message", [
	(ExamDetails(title="  ", max_score=50), "Exam Title"),
	(ExamDetails(title="Unit Test", max_score=0), "Max Score"),
])
async def test_exam_details_are_required(exam_ledger, details, message):
	session = await exam_ledger.load_session("10A", "Physics", DAY)
	session.set_score("S1", 10)

	with pytest.raises(SessionValidationError, match=message):
		await exam_ledger.commit(session, details)


async def test_at_least_one_score_is_required(exam_ledger):
	session = await exam_ledger.load_session("10A", "Physics", DAY)
	with pytest.raises(SessionValidationError, match="at least one score"):
		await exam_ledger.commit(session, UNIT_TEST)


async def test_commit_writes_exam_document(exam_ledger, store):
	session = await exam_ledger.load_session("10A", "Physics", DAY)
	session.set_score("S1", "45")
	session.set_score("S3", 12)

	record = await exam_ledger.commit(session, UNIT_TEST)

	assert record.title == "Unit Test"
	assert record.max_score == 50
	assert record.entries == {"S1": 45, "S3": 12}
	[document] = store.documents("exam_results")
	assert document.data["examTitle"] == "Unit Test"
	assert document.data["maxScore"] == 50
	assert document.data["results"] == {"S1": 45, "S3": 12}
	assert document.data["studentCount"] == 2
	assert document.data["date"] == "01/04/2024"
	assert session.entries == {"S1": 45, "S2": None, "S3": 12}


async def test_locked_exam_reloads_details_and_scores(exam_ledger):
	session = await exam_ledger.load_session("10A", "Physics", DAY)
	session.set_score("S2", 30)
	await exam_ledger.commit(session, UNIT_TEST)

	reloaded = await exam_ledger.load_session("10A", "Physics", DAY)
	assert reloaded.state is SessionState.LOCKED
	assert reloaded.details == UNIT_TEST
	assert reloaded.entries == {"S1": None, "S2": 30, "S3": None}
	with pytest.raises(SessionLockedError):
		reloaded.set_score("S1", 10)


async def test_details_are_fixed_after_publishing(exam_ledger):
	session = await exam_ledger.load_session("10A", "Physics", DAY)
	session.set_score("S2", 30)
	await exam_ledger.commit(session, UNIT_TEST)

	session.unlock(confirmed=True)
	with pytest.raises(SessionValidationError):
		session.set_exam_details("Unit Test", 60)
	with pytest.raises(SessionValidationError):
		await exam_ledger.commit(session, ExamDetails(title="Retest", max_score=50))


async def test_unlocked_update_keeps_single_record(exam_ledger, store):
	session = await exam_ledger.load_session("10A", "Physics", DAY)
	session.set_score("S2", 30)
	first = await exam_ledger.commit(session, UNIT_TEST)

	reloaded = await exam_ledger.load_session("10A", "Physics", DAY)
	reloaded.unlock(confirmed=True)
	reloaded.set_score("S2", 35)
	reloaded.set_score("S1", "")
	second = await exam_ledger.commit(reloaded)

	assert len(store.documents("exam_results")) == 1
	assert second.record_id == first.record_id
	assert second.entries == {"S2": 35}
	assert second.created_at == first.created_at
	assert second.updated_at > first.updated_at


async def test_clearing_a_score_removes_it_on_update(exam_ledger):
	session = await exam_ledger.load_session("10A", "Physics", DAY)
	session.set_score("S1", 20)
	session.set_score("S2", 30)
	await exam_ledger.commit(session, UNIT_TEST)

	session.unlock(confirmed=True)
	session.set_score("S1", None)
	record = await exam_ledger.commit(session)

	assert record.entries == {"S2": 30}


async def test_attendance_operations_rejected_on_exam_session(exam_ledger):
	session = await exam_ledger.load_session("10A", "Physics", DAY)
	with pytest.raises(InvalidStateError):
		session.toggle_attendance("S1")


async def test_student_count_covers_only_the_committed_sheet(exam_ledger, store):
	store.seed("exam_results", "quiz", {
		"classId": "10A", "subject": "Physics", "date": "01/04/2024",
		"examTitle": "Unit Test", "maxScore": 50, "studentCount": 2,
		"results": {"S1": 20, "S9": 41},
	})

	session = await exam_ledger.load_session("10A", "Physics", DAY)
	session.unlock(confirmed=True)
	session.set_score("S2", 33)
	record = await exam_ledger.commit(session)

	assert record.entries == {"S1": 20, "S2": 33, "S9": 41}
	[document] = store.documents("exam_results")
	assert document.data["studentCount"] == 2
