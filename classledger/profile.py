"""Teaching profile: the classes and subjects a teacher records for."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .config import LedgerConfig
from .const import FIELD_CLASSES_TAUGHT, FIELD_SUBJECTS, FIELD_TEACHING_PROFILE
from .models import TeachingAssignment
from .store import Document, DocumentStore

_LOGGER = logging.getLogger(__name__)


@dataclass
class TeachingProfile:
	"""Ordered (class, subject) assignments of one teacher."""
	teacher_id: str
	assignments: List[TeachingAssignment] = field(default_factory=list)

	def classes(self) -> List[str]:
		"""Distinct class ids in first-seen order."""
		seen: List[str] = []
		for assignment in self.assignments:
			if assignment.class_id not in seen:
				seen.append(assignment.class_id)
		return seen

	def subjects_for(self, class_id: str) -> List[str]:
		"""Subjects taught in class_id, in profile order."""
		subjects: List[str] = []
		for assignment in self.assignments:
			if assignment.class_id == class_id and assignment.subject_id not in subjects:
				subjects.append(assignment.subject_id)
		return subjects

	def teaches(self, class_id: str, subject_id: str) -> bool:
		return TeachingAssignment(class_id, subject_id) in self.assignments

	@classmethod
	def from_document(cls, document: Document) -> "TeachingProfile":
		"""Build a profile from a teacher's user document.

		Prefers the explicit teachingProfile list; older profiles only carry
		classesTaught and subjects, which pair up as every combination.
		"""
		assignments: List[TeachingAssignment] = []
		for item in document.get(FIELD_TEACHING_PROFILE) or []:
			if not isinstance(item, dict):
				continue
			class_id, subject_id = item.get("class"), item.get("subject")
			if class_id and subject_id:
				assignments.append(TeachingAssignment(str(class_id), str(subject_id)))

		if not assignments:
			classes = document.get(FIELD_CLASSES_TAUGHT) or []
			subjects = document.get(FIELD_SUBJECTS) or []
			assignments = [
				TeachingAssignment(str(class_id), str(subject_id))
				for class_id in classes
				for subject_id in subjects
			]

		return cls(teacher_id=document.id, assignments=assignments)


async def load_teaching_profile(store: DocumentStore, teacher_id: str, config: Optional[LedgerConfig] = None) -> TeachingProfile:
	"""Fetch a teacher's profile; an unknown teacher has no assignments."""
	config = config or LedgerConfig()
	document = await store.get(config.users_collection, teacher_id)
	if document is None:
		_LOGGER.warning(f"No user document for teacher {teacher_id}")
		return TeachingProfile(teacher_id=teacher_id)
	profile = TeachingProfile.from_document(document)
	_LOGGER.debug(f"Teacher {teacher_id} has {len(profile.assignments)} assignment(s)")
	return profile
