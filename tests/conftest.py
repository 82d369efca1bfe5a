"""Shared fixtures for classledger tests."""

from datetime import date

import pytest

from classledger.calendar import CoverageCalendar
from classledger.ledger import SessionLedger
from classledger.models import RosterEntry, SessionKind
from classledger.roster import StaticRosterProvider
from classledger.store import InMemoryDocumentStore

TODAY = date(2024, 4, 15)


@pytest.fixture
def store():
	return InMemoryDocumentStore()


@pytest.fixture
def roster():
	return StaticRosterProvider({
		"10A": [
			RosterEntry("S3", "Chen"),
			RosterEntry("S1", "asha"),
			RosterEntry("S2", "Bilal"),
		],
	})


@pytest.fixture
def attendance_ledger(store, roster):
	return SessionLedger(store, roster, SessionKind.ATTENDANCE, owner_id="T1")


@pytest.fixture
def exam_ledger(store, roster):
	return SessionLedger(store, roster, SessionKind.EXAM_SCORE, owner_id="T1")


@pytest.fixture
def attendance_calendar(attendance_ledger):
	return CoverageCalendar(attendance_ledger, today=lambda: TODAY)
