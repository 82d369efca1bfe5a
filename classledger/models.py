"""Data models for classledger entities."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Union


class SessionKind(str, Enum):
	"""Kind of record kept by a session."""
	ATTENDANCE = "Attendance"
	EXAM_SCORE = "ExamScore"


class AttendanceStatus(str, Enum):
	"""Attendance mark for one student."""
	PRESENT = "Present"
	ABSENT = "Absent"

	def toggled(self) -> "AttendanceStatus":
		return AttendanceStatus.ABSENT if self is AttendanceStatus.PRESENT else AttendanceStatus.PRESENT


class SessionState(str, Enum):
	"""Client-side lifecycle state of a loaded session."""
	DRAFT = "draft"
	LOCKED = "locked"
	UNLOCKED = "unlocked"

	@property
	def editable(self) -> bool:
		return self is not SessionState.LOCKED


EntryValue = Union[AttendanceStatus, int]
CoverageSet = FrozenSet[date]


@dataclass(frozen=True)
class SessionKey:
	"""Composite identity of a session: class, subject and calendar day."""
	class_id: str
	subject_id: str
	date: date

	def __str__(self) -> str:
		return f"{self.class_id}/{self.subject_id}/{self.date.isoformat()}"


@dataclass(frozen=True)
class ExamDetails:
	"""Metadata of an exam score sheet."""
	title: str
	max_score: int


@dataclass
class AttendanceSummary:
	"""Head count stored alongside an attendance sheet."""
	present: int = 0
	absent: int = 0
	total: int = 0

	def as_dict(self) -> Dict[str, int]:
		return {"present": self.present, "absent": self.absent, "total": self.total}


@dataclass
class SessionRecord:
	"""A committed session document."""
	record_id: str
	key: SessionKey
	kind: SessionKind
	owner_id: Optional[str]
	entries: Dict[str, EntryValue] = field(default_factory=dict)
	title: Optional[str] = None
	max_score: Optional[int] = None
	created_at: Optional[datetime] = None
	updated_at: Optional[datetime] = None

	@property
	def details(self) -> Optional[ExamDetails]:
		"""Exam metadata, or None for attendance records."""
		if self.kind is not SessionKind.EXAM_SCORE or self.max_score is None:
			return None
		return ExamDetails(title=self.title or "", max_score=self.max_score)

	def __str__(self) -> str:
		return f"{self.kind.value} {self.key} ({len(self.entries)} entries)"


@dataclass(frozen=True)
class RosterEntry:
	"""Read-only projection of an enrolled student."""
	student_id: str
	display_name: str
	avatar_url: Optional[str] = None
	roll_number: Optional[str] = None
	subjects: Optional[tuple] = None

	@property
	def initial(self) -> str:
		return self.display_name[:1].upper()


@dataclass(frozen=True)
class TeachingAssignment:
	"""A (class, subject) pair a teacher is assigned to."""
	class_id: str
	subject_id: str


@dataclass(frozen=True)
class CalendarDay:
	"""A single cell of the coverage calendar month grid."""
	date: date
	in_month: bool
	is_today: bool = False
	is_future: bool = False
	is_marked: bool = False
	is_selected: bool = False

	@property
	def disabled(self) -> bool:
		"""Future days cannot be selected."""
		return self.is_future


@dataclass
class AttendanceHistory:
	"""A student's attendance marks over the sessions of their class."""
	student_id: str
	days: Dict[date, str] = field(default_factory=dict)
	present: int = 0
	total: int = 0
	subjects: List[str] = field(default_factory=list)

	@property
	def percentage(self) -> float:
		if self.total == 0:
			return 0.0
		return self.present / self.total * 100


@dataclass
class ExamResult:
	"""One exam score for a student."""
	record_id: str
	title: str
	subject_id: str
	score: int
	max_score: int
	date: Optional[date] = None

	@property
	def percentage(self) -> float:
		if self.max_score <= 0:
			return 0.0
		return self.score / self.max_score * 100

	def __str__(self) -> str:
		return f"{self.title} ({self.subject_id}): {self.score}/{self.max_score}"


@dataclass
class ExamReport:
	"""A student's exam results plus summary statistics."""
	student_id: str
	results: List[ExamResult] = field(default_factory=list)
	average_percentage: float = 0.0
	best_subject: Optional[str] = None
	subjects: List[str] = field(default_factory=list)
