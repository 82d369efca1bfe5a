"""Roster provider: students enrolled in a class."""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from .config import LedgerConfig
from .const import (
	FIELD_NAME,
	FIELD_PROFILE_IMAGE,
	FIELD_ROLE,
	FIELD_ROLL_NO,
	FIELD_STANDARD,
	FIELD_SUBJECTS,
	ROLE_STUDENT,
	UNKNOWN_STUDENT_NAME,
)
from .models import RosterEntry
from .store import Document, DocumentStore

_LOGGER = logging.getLogger(__name__)


def sort_roster(entries: List[RosterEntry]) -> List[RosterEntry]:
	"""Order roster entries by display name, case-insensitively."""
	return sorted(entries, key=lambda entry: (entry.display_name.casefold(), entry.student_id))


class RosterProvider(ABC):
	"""Supplies the ordered list of students for a class."""

	@abstractmethod
	async def get_roster(self, class_id: str, subject_id: Optional[str] = None) -> List[RosterEntry]:
		"""Return students of class_id ordered by display name."""


class StaticRosterProvider(RosterProvider):
	"""Roster from a fixed mapping of class id to entries."""

	def __init__(self, rosters: Optional[dict] = None) -> None:
		self._rosters = {class_id: list(entries) for class_id, entries in (rosters or {}).items()}

	def set_roster(self, class_id: str, entries: List[RosterEntry]) -> None:
		self._rosters[class_id] = list(entries)

	async def get_roster(self, class_id: str, subject_id: Optional[str] = None) -> List[RosterEntry]:
		return sort_roster(self._rosters.get(class_id, []))


class DocumentRosterProvider(RosterProvider):
	"""Roster read from the users collection of the document store."""

	def __init__(self, store: DocumentStore, config: Optional[LedgerConfig] = None, filter_by_enrollment: bool = False) -> None:
		self._store = store
		self._config = config or LedgerConfig()
		self.filter_by_enrollment = filter_by_enrollment

	@staticmethod
	def entry_from_document(document: Document) -> RosterEntry:
		subjects = document.get(FIELD_SUBJECTS)
		roll_number = document.get(FIELD_ROLL_NO)
		return RosterEntry(
			student_id=document.id,
			display_name=document.get(FIELD_NAME) or UNKNOWN_STUDENT_NAME,
			avatar_url=document.get(FIELD_PROFILE_IMAGE) or None,
			roll_number=str(roll_number) if roll_number not in (None, "") else None,
			subjects=tuple(subjects) if isinstance(subjects, list) else None,
		)

	async def get_roster(self, class_id: str, subject_id: Optional[str] = None) -> List[RosterEntry]:
		documents = await self._store.query(
			self._config.users_collection,
			{FIELD_ROLE: ROLE_STUDENT, FIELD_STANDARD: class_id},
		)
		entries = [self.entry_from_document(document) for document in documents]

		if self.filter_by_enrollment and subject_id:
			# Students without an enrollment list take every subject of their class
			entries = [
				entry for entry in entries
				if entry.subjects is None or subject_id in entry.subjects
			]

		_LOGGER.debug(f"Roster for {class_id} ({subject_id or 'all subjects'}): {len(entries)} student(s)")
		return sort_roster(entries)
