"""Session ledger: load, edit and commit one attendance or score sheet.

A session is identified by (class, subject, date). Loading never writes;
committing is an upsert keyed by that triple, so at most one record exists
per key. A committed record loads as Locked and must be explicitly unlocked
before its entries can be edited and re-committed.

Lifecycle of a session handle:

	Draft --commit--> Locked --unlock--> Unlocked --commit--> Locked

A failed commit leaves the handle in the state it had before the call.
"""

import asyncio
import logging
import re
import weakref
from datetime import date, datetime
from typing import Dict, List, Optional, Union

from .config import LedgerConfig
from .const import FIELD_CLASS_ID, FIELD_DATE, FIELD_SUBJECT
from .exceptions import (
	InvalidStateError,
	SessionLoadError,
	SessionLockedError,
	SessionValidationError,
	SessionWriteError,
	StoreError,
	UnknownStudentError,
)
from .kinds import SessionKindStrategy, get_strategy, summarise_attendance
from .models import (
	AttendanceStatus,
	AttendanceSummary,
	CoverageSet,
	EntryValue,
	ExamDetails,
	RosterEntry,
	SessionKey,
	SessionKind,
	SessionRecord,
	SessionState,
)
from .roster import RosterProvider
from .store import Document, DocumentStore
from .utils import parse_date_lenient

_LOGGER = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"[^0-9]")


def parse_score_input(value: Union[str, int, None]) -> Optional[int]:
	"""Keep digits only: "4a2" becomes 42, "" or None becomes blank."""
	if value is None:
		return None
	if isinstance(value, bool):
		raise SessionValidationError("Scores must be whole numbers")
	if isinstance(value, int):
		if value < 0:
			raise SessionValidationError("Scores cannot be negative")
		return value
	digits = _NON_DIGITS.sub("", str(value))
	return int(digits) if digits else None


class Session:
	"""In-memory edit buffer for one session key."""

	def __init__(
		self,
		key: SessionKey,
		strategy: SessionKindStrategy,
		roster: List[RosterEntry],
		entries: Dict[str, Optional[EntryValue]],
		state: SessionState,
		record: Optional[SessionRecord] = None,
		details: Optional[ExamDetails] = None,
	):
		self._key = key
		self._strategy = strategy
		self._roster = list(roster)
		self._entries = dict(entries)
		self._state = state
		self._record = record
		self._details = details

	# === properties ===

	@property
	def key(self) -> SessionKey:
		return self._key

	@property
	def kind(self) -> SessionKind:
		return self._strategy.kind

	@property
	def strategy(self) -> SessionKindStrategy:
		return self._strategy

	@property
	def state(self) -> SessionState:
		return self._state

	@property
	def roster(self) -> List[RosterEntry]:
		return list(self._roster)

	@property
	def record(self) -> Optional[SessionRecord]:
		"""The committed record this buffer was loaded from or saved to."""
		return self._record

	@property
	def details(self) -> Optional[ExamDetails]:
		return self._details

	@property
	def entries(self) -> Dict[str, Optional[EntryValue]]:
		"""Copy of the buffer, one slot per roster student in roster order."""
		return dict(self._entries)

	@property
	def is_locked(self) -> bool:
		return self._state is SessionState.LOCKED

	@property
	def is_update(self) -> bool:
		"""True when committing will update an existing record."""
		return self._record is not None

	def entry(self, student_id: str) -> Optional[EntryValue]:
		self._ensure_student(student_id)
		return self._entries[student_id]

	# === guards ===

	def _ensure_editable(self) -> None:
		if not self._state.editable:
			raise SessionLockedError(f"Session {self._key} is locked; unlock to edit")

	def _ensure_kind(self, kind: SessionKind) -> None:
		if self.kind is not kind:
			raise InvalidStateError(f"Operation requires a {kind.value} session, not {self.kind.value}")

	def _ensure_student(self, student_id: str) -> None:
		if student_id not in self._entries:
			raise UnknownStudentError(f"Student {student_id} is not on the roster for {self._key}")

	# === attendance ===

	def toggle_attendance(self, student_id: str) -> AttendanceStatus:
		"""Flip Present and Absent. An unset slot becomes Present."""
		self._ensure_kind(SessionKind.ATTENDANCE)
		self._ensure_editable()
		self._ensure_student(student_id)

		current = self._entries[student_id]
		status = current.toggled() if isinstance(current, AttendanceStatus) else AttendanceStatus.PRESENT
		self._entries[student_id] = status
		return status

	def mark_all_present(self) -> None:
		self._ensure_kind(SessionKind.ATTENDANCE)
		self._ensure_editable()
		for student_id in self._entries:
			self._entries[student_id] = AttendanceStatus.PRESENT

	def summary(self) -> AttendanceSummary:
		self._ensure_kind(SessionKind.ATTENDANCE)
		return summarise_attendance(self._entries)

	# === exam scores ===

	def set_score(self, student_id: str, value: Union[str, int, None]) -> Optional[int]:
		"""Store a score for a student.

		Values above the current max score are kept but reported by
		invalid_student_ids(); commit refuses them.
		"""
		self._ensure_kind(SessionKind.EXAM_SCORE)
		self._ensure_editable()
		self._ensure_student(student_id)

		score = parse_score_input(value)
		self._entries[student_id] = score
		return score

	def clear_scores(self) -> None:
		self._ensure_kind(SessionKind.EXAM_SCORE)
		self._ensure_editable()
		for student_id in self._entries:
			self._entries[student_id] = None

	def set_exam_details(self, title: str, max_score: Union[int, str]) -> ExamDetails:
		"""Set exam title and max score; both are fixed once first committed."""
		self._ensure_kind(SessionKind.EXAM_SCORE)
		self._ensure_editable()

		if isinstance(max_score, str):
			parsed = parse_score_input(max_score)
			max_score = parsed if parsed is not None else 0
		details = ExamDetails(title=title.strip(), max_score=max_score)

		committed = self._record.details if self._record else None
		if committed is not None and details != committed:
			raise SessionValidationError(
				f"Exam details are fixed once published ({committed.title}, max {committed.max_score})"
			)

		self._details = details
		return details

	def invalid_student_ids(self) -> List[str]:
		"""Students whose score exceeds the current max score."""
		if self.kind is not SessionKind.EXAM_SCORE or self._details is None:
			return []
		return [
			student_id for student_id, value in self._entries.items()
			if value is not None and value > self._details.max_score
		]

	def graded_count(self) -> int:
		"""Entries set on this sheet; departed students are not counted."""
		return sum(1 for value in self._entries.values() if value is not None)

	# === lifecycle ===

	def unlock(self, confirmed: bool = False) -> bool:
		"""Allow edits to a committed session.

		Client-side only; nothing is written. Requires the caller to pass
		confirmed=True after asking the user, and returns whether the session
		was unlocked.
		"""
		if self._state is not SessionState.LOCKED:
			raise InvalidStateError(f"Only a locked session can be unlocked (state: {self._state.value})")
		if not confirmed:
			_LOGGER.debug(f"Unlock of {self._key} not confirmed")
			return False
		self._state = SessionState.UNLOCKED
		_LOGGER.info(f"Unlocked {self.kind.value} session {self._key}")
		return True

	def _committed(self, record: SessionRecord) -> None:
		self._record = record
		if record.details is not None:
			self._details = record.details
		for student_id in self._entries:
			self._entries[student_id] = record.entries.get(student_id)
		self._state = SessionState.LOCKED

	def __repr__(self) -> str:
		return f"<Session {self.kind.value} {self._key} {self._state.value}>"


class SessionLedger:
	"""Loads and commits sessions of one kind against a document store."""

	def __init__(
		self,
		store: DocumentStore,
		roster: RosterProvider,
		kind: Union[SessionKind, SessionKindStrategy],
		owner_id: Optional[str] = None,
		config: Optional[LedgerConfig] = None,
	):
		self._store = store
		self._roster = roster
		self._strategy = get_strategy(kind)
		self.owner_id = owner_id
		self.config = config or LedgerConfig()
		self._key_locks: "weakref.WeakValueDictionary[SessionKey, asyncio.Lock]" = weakref.WeakValueDictionary()

	@property
	def kind(self) -> SessionKind:
		return self._strategy.kind

	@property
	def collection(self) -> str:
		return self._strategy.collection(self.config)

	def _lock_for(self, key: SessionKey) -> asyncio.Lock:
		# Entries vanish once no load or commit holds or awaits the lock
		lock = self._key_locks.get(key)
		if lock is None:
			lock = self._key_locks[key] = asyncio.Lock()
		return lock

	async def _find_document(self, key: SessionKey) -> Optional[Document]:
		# Older clients wrote DD-MM-YYYY dates, so match the parsed day
		scoped = await self._store.query(self.collection, self._strategy.scope_filters(key))
		documents = [document for document in scoped if self._strategy.matches(document, key)]
		if not documents:
			return None
		if len(documents) > 1:
			# Older clients appended instead of upserting; the earliest record owns the key
			_LOGGER.warning(f"{len(documents)} {self.kind.value} records share key {key}; using the earliest")
			documents.sort(key=lambda document: (document.create_time is None, document.create_time or datetime.min, document.id))
		return documents[0]

	async def find_record(self, key: SessionKey) -> Optional[SessionRecord]:
		"""Return the committed record at key, if any."""
		document = await self._find_document(key)
		return self._strategy.decode(document) if document is not None else None

	async def load_session(self, class_id: str, subject_id: str, day: date) -> Session:
		"""Load the session at (class_id, subject_id, day) merged with the roster.

		An existing record loads Locked with one buffer slot per roster
		student; students absent from the record stay unset. Otherwise the
		session is a Draft filled with the kind's default value.

		Raises:
			SessionLoadError: roster or record lookup failed; retry is safe.
		"""
		if isinstance(day, datetime):
			day = day.date()
		key = SessionKey(class_id, subject_id, day)

		async with self._lock_for(key):
			try:
				roster = await self._roster.get_roster(class_id, subject_id)
				record = await self.find_record(key)
			except StoreError as e:
				_LOGGER.warning(f"Failed to load {self.kind.value} session {key}: {e}")
				raise SessionLoadError(f"Could not load session {key}: {e}") from e

		if record is not None:
			entries = {entry.student_id: record.entries.get(entry.student_id) for entry in roster}
			details = record.details
			state = SessionState.LOCKED
		else:
			default = self._strategy.default_value()
			entries = {entry.student_id: default for entry in roster}
			details = None
			if self.kind is SessionKind.EXAM_SCORE:
				details = ExamDetails(title="", max_score=self.config.default_max_score)
			state = SessionState.DRAFT

		_LOGGER.debug(f"Loaded {self.kind.value} session {key} as {state.value} ({len(roster)} student(s))")
		return Session(key, self._strategy, roster, entries, state, record=record, details=details)

	async def commit(self, session: Session, details: Optional[ExamDetails] = None) -> SessionRecord:
		"""Validate and upsert the session, then lock it.

		Raises:
			SessionLockedError: the session is locked.
			SessionValidationError: nothing was written.
			SessionWriteError: the store rejected the write; state is unchanged.
		"""
		if session.kind is not self.kind:
			raise InvalidStateError(f"{self.kind.value} ledger cannot commit a {session.kind.value} session")
		if session.is_locked:
			raise SessionLockedError(f"Session {session.key} is locked; unlock before resubmitting")

		if details is not None:
			session.set_exam_details(details.title, details.max_score)
		buffer = session.entries
		self._strategy.validate(buffer, session.details)

		key = session.key
		async with self._lock_for(key):
			try:
				existing = await self._find_document(key)
				previous = self._strategy.decode(existing) if existing is not None else None

				# Students dropped from the roster keep their committed entries
				entries: Dict[str, EntryValue] = {}
				if previous is not None:
					entries.update({
						student_id: value for student_id, value in previous.entries.items()
						if student_id not in buffer
					})
				entries.update({student_id: value for student_id, value in buffer.items() if value is not None})

				owner_id = previous.owner_id if previous is not None and previous.owner_id else self.owner_id
				data = self._strategy.encode(key, owner_id, entries, session.details, session.graded_count())

				if existing is not None:
					document = await self._store.update(self.collection, existing.id, data)
					_LOGGER.info(f"Updated {self.kind.value} record {existing.id} for {key}")
				else:
					if session.is_update:
						_LOGGER.warning(f"Record for {key} disappeared since load; creating a new one")
					document = await self._store.create(self.collection, data)
					_LOGGER.info(f"Created {self.kind.value} record {document.id} for {key}")
			except StoreError as e:
				_LOGGER.error(f"Failed to commit {self.kind.value} session {key}: {e}")
				raise SessionWriteError(f"Could not save session {key}: {e}") from e

		record = self._strategy.decode(document)
		session._committed(record)
		return record

	async def get_marked_dates(self, class_id: str, subject_id: str) -> CoverageSet:
		"""Dates with a committed record for class_id and subject_id, in one query."""
		try:
			documents = await self._store.query(
				self.collection,
				{FIELD_CLASS_ID: class_id, FIELD_SUBJECT: subject_id},
			)
		except StoreError as e:
			raise SessionLoadError(f"Could not load recorded dates for {class_id}/{subject_id}: {e}") from e

		dates = set()
		for document in documents:
			day = parse_date_lenient(document.get(FIELD_DATE))
			if day is None:
				_LOGGER.warning(f"Skipping {self.kind.value} record {document.id} with date {document.get(FIELD_DATE)!r}")
				continue
			dates.add(day)
		return frozenset(dates)
