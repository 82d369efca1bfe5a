"""Per-kind behaviour of session sheets: defaults, validation and encoding."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

from .config import LedgerConfig
from .const import (
	FIELD_CLASS_ID,
	FIELD_CREATED_AT,
	FIELD_DATE,
	FIELD_EXAM_TITLE,
	FIELD_MAX_SCORE,
	FIELD_RECORDS,
	FIELD_RESULTS,
	FIELD_STUDENT_COUNT,
	FIELD_SUBJECT,
	FIELD_SUMMARY,
	FIELD_TEACHER_ID,
	FIELD_UPDATED_AT,
)
from .exceptions import SessionValidationError, StoreDataError
from .models import (
	AttendanceStatus,
	AttendanceSummary,
	EntryValue,
	ExamDetails,
	SessionKey,
	SessionKind,
	SessionRecord,
)
from .store import Document
from .utils import format_date, parse_date_lenient

_LOGGER = logging.getLogger(__name__)

Entries = Mapping[str, Optional[EntryValue]]


def parse_attendance_status(value: Any) -> Optional[AttendanceStatus]:
	"""Normalise a stored status such as "Present ", "present" or "ABSENT"."""
	if isinstance(value, AttendanceStatus):
		return value
	if not isinstance(value, str):
		return None
	normalised = value.strip().lower()
	for status in AttendanceStatus:
		if status.value.lower() == normalised:
			return status
	return None


def summarise_attendance(entries: Entries) -> AttendanceSummary:
	present = sum(1 for value in entries.values() if value is AttendanceStatus.PRESENT)
	absent = sum(1 for value in entries.values() if value is AttendanceStatus.ABSENT)
	return AttendanceSummary(present=present, absent=absent, total=present + absent)


class SessionKindStrategy(ABC):
	"""Behaviour that differs between attendance and exam score sheets."""

	kind: SessionKind
	entries_field: str

	@abstractmethod
	def collection(self, config: LedgerConfig) -> str:
		"""Name of the collection holding this kind of record."""

	@abstractmethod
	def default_value(self) -> Optional[EntryValue]:
		"""Buffer value for a roster student in a fresh draft."""

	@abstractmethod
	def parse_entry(self, value: Any) -> Optional[EntryValue]:
		"""Convert one stored entry; None if it cannot be understood."""

	@abstractmethod
	def validate(self, entries: Entries, details: Optional[ExamDetails]) -> None:
		"""Raise SessionValidationError if the buffer may not be committed."""

	def kind_fields(self, entries: Dict[str, EntryValue], details: Optional[ExamDetails], filled: int) -> Dict[str, Any]:
		"""Kind-specific fields written next to the entries map.

		filled is the number of entries set on the sheet being committed.
		"""
		return {}

	def scope_filters(self, key: SessionKey) -> Dict[str, Any]:
		return {FIELD_CLASS_ID: key.class_id, FIELD_SUBJECT: key.subject_id}

	def key_fields(self, key: SessionKey) -> Dict[str, Any]:
		"""Identity fields of a record; the date is always written as DD/MM/YYYY."""
		data = self.scope_filters(key)
		data[FIELD_DATE] = format_date(key.date)
		return data

	def matches(self, document: Document, key: SessionKey) -> bool:
		"""True when document is stored under key, whatever its date format."""
		return parse_date_lenient(document.get(FIELD_DATE)) == key.date

	def encode(
		self,
		key: SessionKey,
		owner_id: Optional[str],
		entries: Dict[str, EntryValue],
		details: Optional[ExamDetails],
		filled: Optional[int] = None,
	) -> Dict[str, Any]:
		"""Document fields for a write; timestamps are left to the store."""
		if filled is None:
			filled = len(entries)
		data = self.key_fields(key)
		data[FIELD_TEACHER_ID] = owner_id
		data[self.entries_field] = {
			student_id: value.value if isinstance(value, AttendanceStatus) else value
			for student_id, value in entries.items()
		}
		data.update(self.kind_fields(entries, details, filled))
		return data

	def parse_entries(self, raw: Any) -> Dict[str, EntryValue]:
		entries: Dict[str, EntryValue] = {}
		if not isinstance(raw, Mapping):
			return entries
		for student_id, value in raw.items():
			parsed = self.parse_entry(value)
			if parsed is None:
				_LOGGER.warning(f"Ignoring unreadable {self.kind.value} entry for {student_id}: {value!r}")
				continue
			entries[str(student_id)] = parsed
		return entries

	def decode(self, document: Document) -> SessionRecord:
		"""Turn a stored document into a SessionRecord."""
		day = parse_date_lenient(document.get(FIELD_DATE))
		if day is None:
			raise StoreDataError(f"Document {document.id} has no usable date: {document.get(FIELD_DATE)!r}")
		key = SessionKey(
			class_id=str(document.get(FIELD_CLASS_ID, "")),
			subject_id=str(document.get(FIELD_SUBJECT, "")),
			date=day,
		)
		return SessionRecord(
			record_id=document.id,
			key=key,
			kind=self.kind,
			owner_id=document.get(FIELD_TEACHER_ID),
			entries=self.parse_entries(document.get(self.entries_field)),
			created_at=document.get(FIELD_CREATED_AT) or document.create_time,
			updated_at=document.get(FIELD_UPDATED_AT) or document.update_time,
		)


class AttendanceKind(SessionKindStrategy):
	"""Daily attendance: every roster student defaults to Present."""

	kind = SessionKind.ATTENDANCE
	entries_field = FIELD_RECORDS

	def collection(self, config: LedgerConfig) -> str:
		return config.attendance_collection

	def default_value(self) -> Optional[EntryValue]:
		return AttendanceStatus.PRESENT

	def parse_entry(self, value: Any) -> Optional[EntryValue]:
		return parse_attendance_status(value)

	def validate(self, entries: Entries, details: Optional[ExamDetails]) -> None:
		for student_id, value in entries.items():
			if value is not None and not isinstance(value, AttendanceStatus):
				raise SessionValidationError(f"Invalid attendance mark for {student_id}", [student_id])

	def kind_fields(self, entries: Dict[str, EntryValue], details: Optional[ExamDetails], filled: int) -> Dict[str, Any]:
		return {FIELD_SUMMARY: summarise_attendance(entries).as_dict()}


class ExamScoreKind(SessionKindStrategy):
	"""Exam score sheet: blank by default, bounded by the exam's max score."""

	kind = SessionKind.EXAM_SCORE
	entries_field = FIELD_RESULTS

	def collection(self, config: LedgerConfig) -> str:
		return config.exam_collection

	def default_value(self) -> Optional[EntryValue]:
		return None

	def parse_entry(self, value: Any) -> Optional[EntryValue]:
		if isinstance(value, bool):
			return None
		if isinstance(value, int):
			return value if value >= 0 else None
		if isinstance(value, float) and value.is_integer() and value >= 0:
			return int(value)
		if isinstance(value, str) and value.strip().isdigit():
			return int(value.strip())
		return None

	def validate(self, entries: Entries, details: Optional[ExamDetails]) -> None:
		if details is None or not details.title.strip():
			raise SessionValidationError("Please enter an Exam Title")
		if isinstance(details.max_score, bool) or not isinstance(details.max_score, int) or details.max_score <= 0:
			raise SessionValidationError("Please enter a valid Max Score")

		over = [
			student_id for student_id, value in entries.items()
			if value is not None and value > details.max_score
		]
		if over:
			raise SessionValidationError("Some scores exceed the Max Score!", over)

		if not any(value is not None for value in entries.values()):
			raise SessionValidationError("Please enter at least one score.")

	def kind_fields(self, entries: Dict[str, EntryValue], details: Optional[ExamDetails], filled: int) -> Dict[str, Any]:
		return {
			FIELD_EXAM_TITLE: details.title.strip() if details else "",
			FIELD_MAX_SCORE: details.max_score if details else None,
			FIELD_STUDENT_COUNT: filled,
		}

	def decode(self, document: Document) -> SessionRecord:
		record = super().decode(document)
		record.title = document.get(FIELD_EXAM_TITLE)
		max_score = document.get(FIELD_MAX_SCORE)
		record.max_score = self.parse_entry(max_score) if max_score is not None else None
		return record


_STRATEGIES = {
	SessionKind.ATTENDANCE: AttendanceKind,
	SessionKind.EXAM_SCORE: ExamScoreKind,
}


def get_strategy(kind) -> SessionKindStrategy:
	"""Resolve a SessionKind (or a ready strategy) to a strategy instance."""
	if isinstance(kind, SessionKindStrategy):
		return kind
	return _STRATEGIES[SessionKind(kind)]()
