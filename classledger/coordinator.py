"""Coordinator wiring teaching profile, coverage calendar and session ledger."""

import logging
from datetime import date
from typing import List, Optional

from .calendar import CoverageCalendar
from .exceptions import InvalidStateError, SessionLoadError
from .ledger import Session, SessionLedger
from .models import ExamDetails, SessionRecord
from .profile import TeachingProfile

_LOGGER = logging.getLogger(__name__)


class SessionCoordinator:
	"""Drives the select class -> subject -> date -> edit -> commit flow."""

	def __init__(self, ledger: SessionLedger, calendar: CoverageCalendar, profile: TeachingProfile) -> None:
		"""Initialise coordinator."""
		self.ledger = ledger
		self.calendar = calendar
		self.profile = profile
		self.class_id: Optional[str] = None
		self.subject_id: Optional[str] = None
		self.session: Optional[Session] = None
		self._load_generation = 0

	@property
	def classes(self) -> List[str]:
		return self.profile.classes()

	@property
	def subjects(self) -> List[str]:
		"""Subjects available for the selected class."""
		if self.class_id is None:
			return []
		return self.profile.subjects_for(self.class_id)

	async def start(self) -> Optional[Session]:
		"""Select the first class of the profile and load today's session."""
		classes = self.classes
		if not classes:
			_LOGGER.warning(f"Teacher {self.profile.teacher_id} has no classes assigned")
			return None
		return await self.select_class(classes[0])

	async def select_class(self, class_id: str) -> Optional[Session]:
		"""Select a class; the subject cascades to the class's first subject."""
		self.class_id = class_id
		subjects = self.profile.subjects_for(class_id)
		if not subjects:
			_LOGGER.debug(f"No subjects for class {class_id}")
			self.subject_id = None
			self.session = None
			self._load_generation += 1
			return None
		return await self.select_subject(subjects[0])

	async def select_subject(self, subject_id: str) -> Optional[Session]:
		"""Select a subject, refresh calendar markers and reload the selected date."""
		if self.class_id is None:
			raise InvalidStateError("Select a class before a subject")
		if not self.profile.teaches(self.class_id, subject_id):
			raise InvalidStateError(f"{subject_id} is not taught in class {self.class_id}")
		self.subject_id = subject_id
		self.calendar.set_scope(self.class_id, subject_id)
		await self.calendar.refresh()
		return await self.select_date(self.calendar.selected_date)

	async def select_date(self, day: date) -> Optional[Session]:
		"""Select a date and load its session.

		Returns None when a newer selection superseded this load while it was
		in flight; the stale result, or its error, is discarded. The calendar
		selection only moves once the session has loaded.

		Raises:
			FutureDateError: day is after today.
			SessionLoadError: the load failed; the previous session stays selected.
		"""
		if self.class_id is None or self.subject_id is None:
			raise InvalidStateError("Select a class and subject before a date")
		self.calendar.ensure_selectable(day)

		self._load_generation += 1
		generation = self._load_generation
		try:
			session = await self.ledger.load_session(self.class_id, self.subject_id, day)
		except SessionLoadError as e:
			if generation != self._load_generation:
				_LOGGER.debug(f"Discarding failed stale load of {day.isoformat()}: {e}")
				return None
			raise
		if generation != self._load_generation:
			_LOGGER.debug(f"Discarding stale load of {session.key}")
			return None
		self.calendar.select_date(day)
		self.session = session
		return session

	def _require_session(self) -> Session:
		if self.session is None:
			raise InvalidStateError("No session loaded")
		return self.session

	def unlock(self, confirmed: bool = False) -> bool:
		return self._require_session().unlock(confirmed=confirmed)

	async def commit(self, details: Optional[ExamDetails] = None) -> SessionRecord:
		"""Commit the loaded session and rebuild the calendar markers."""
		session = self._require_session()
		record = await self.ledger.commit(session, details)
		if (session.key.class_id, session.key.subject_id) == (self.calendar.class_id, self.calendar.subject_id):
			try:
				await self.calendar.refresh()
			except SessionLoadError as e:
				# The record is saved; markers catch up on the next refresh
				_LOGGER.warning(f"Committed {session.key} but could not refresh calendar: {e}")
		return record
