"""Student-side views over committed attendance and exam records."""

import logging
from datetime import date
from typing import Dict, List, Optional

from .config import LedgerConfig
from .const import (
	DEFAULT_MAX_SCORE,
	FIELD_CLASS_ID,
	FIELD_DATE,
	FIELD_EXAM_TITLE,
	FIELD_MAX_SCORE,
	FIELD_RECORDS,
	FIELD_RESULTS,
	FIELD_SUBJECT,
	GENERAL_SUBJECT,
	GRADE_FAIR,
	GRADE_FAIR_THRESHOLD,
	GRADE_GOOD,
	GRADE_GOOD_THRESHOLD,
	GRADE_POOR,
)
from .kinds import ExamScoreKind
from .models import AttendanceHistory, AttendanceStatus, ExamReport, ExamResult
from .store import DocumentStore
from .utils import parse_date_lenient

_LOGGER = logging.getLogger(__name__)

_PRESENT = AttendanceStatus.PRESENT.value.lower()


def grade_band(percentage: float) -> str:
	"""Classify a percentage for display."""
	if percentage >= GRADE_GOOD_THRESHOLD:
		return GRADE_GOOD
	if percentage >= GRADE_FAIR_THRESHOLD:
		return GRADE_FAIR
	return GRADE_POOR


def best_subject(results: List[ExamResult]) -> Optional[str]:
	"""Subject with the highest mean percentage; ties keep the first seen."""
	by_subject: Dict[str, List[float]] = {}
	for result in results:
		by_subject.setdefault(result.subject_id, []).append(result.percentage)

	best, best_avg = None, -1.0
	for subject, percentages in by_subject.items():
		avg = sum(percentages) / len(percentages)
		if avg > best_avg:
			best, best_avg = subject, avg
	return best


class StudentReports:
	"""Read-only reports for one student across their class's records."""

	def __init__(self, store: DocumentStore, config: Optional[LedgerConfig] = None) -> None:
		self._store = store
		self.config = config or LedgerConfig()
		self._scores = ExamScoreKind()

	async def attendance_history(self, student_id: str, class_id: str, subject_id: Optional[str] = None) -> AttendanceHistory:
		"""Attendance marks of a student, optionally for one subject.

		Only the first record seen for a date counts towards the totals.
		"""
		documents = await self._store.query(self.config.attendance_collection, {FIELD_CLASS_ID: class_id})
		history = AttendanceHistory(student_id=student_id)

		for document in documents:
			records = document.get(FIELD_RECORDS) or {}
			status = records.get(student_id) if isinstance(records, dict) else None
			if not status:
				continue

			subject = document.get(FIELD_SUBJECT) or GENERAL_SUBJECT
			if subject not in history.subjects:
				history.subjects.append(subject)
			if subject_id is not None and subject != subject_id:
				continue

			day = parse_date_lenient(document.get(FIELD_DATE))
			if day is None:
				_LOGGER.warning(f"Skipping attendance record {document.id} with date {document.get(FIELD_DATE)!r}")
				continue
			if day in history.days:
				continue

			normalised = str(status).strip().lower()
			history.days[day] = normalised
			history.total += 1
			if normalised == _PRESENT:
				history.present += 1

		return history

	async def exam_results(self, student_id: str, class_id: str, subject_id: Optional[str] = None) -> ExamReport:
		"""Exam results of a student, newest first.

		The average covers the selected subject; the best subject is chosen
		across every subject.
		"""
		documents = await self._store.query(self.config.exam_collection, {FIELD_CLASS_ID: class_id})

		results: List[ExamResult] = []
		for document in documents:
			raw_results = document.get(FIELD_RESULTS) or {}
			raw = raw_results.get(student_id) if isinstance(raw_results, dict) else None
			score = self._scores.parse_entry(raw) if raw not in (None, "") else None
			if score is None:
				continue

			max_score = self._scores.parse_entry(document.get(FIELD_MAX_SCORE)) or DEFAULT_MAX_SCORE
			results.append(ExamResult(
				record_id=document.id,
				title=document.get(FIELD_EXAM_TITLE) or "Untitled Test",
				subject_id=document.get(FIELD_SUBJECT) or GENERAL_SUBJECT,
				score=score,
				max_score=max_score,
				date=parse_date_lenient(document.get(FIELD_DATE)),
			))

		results.sort(key=lambda result: result.date or date.min, reverse=True)

		report = ExamReport(student_id=student_id, best_subject=best_subject(results))
		for result in results:
			if result.subject_id not in report.subjects:
				report.subjects.append(result.subject_id)

		report.results = [r for r in results if subject_id is None or r.subject_id == subject_id]
		if report.results:
			report.average_percentage = sum(r.percentage for r in report.results) / len(report.results)
		return report
