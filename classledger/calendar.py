"""Coverage calendar: month grid of recorded sessions for a class and subject."""

import calendar as _calendar
import logging
from datetime import date
from typing import Callable, List, Optional

from .exceptions import FutureDateError, InvalidStateError
from .ledger import SessionLedger
from .models import CalendarDay, CoverageSet
from .utils import add_months, month_start

_LOGGER = logging.getLogger(__name__)


class CoverageCalendar:
	"""Navigable month view answering "is date D already recorded?".

	Covered dates are fetched in one bulk query per class+subject and cached.
	The cache is replaced wholesale on refresh(), never patched.
	"""

	def __init__(self, ledger: SessionLedger, today: Optional[Callable[[], date]] = None, first_weekday: int = _calendar.SUNDAY):
		self._ledger = ledger
		self._today = today or date.today
		self._grid = _calendar.Calendar(firstweekday=first_weekday)
		self.class_id: Optional[str] = None
		self.subject_id: Optional[str] = None
		self._marked: CoverageSet = frozenset()
		self._selected: date = self._today()
		self._month: date = month_start(self._selected)

	# === properties ===

	@property
	def today(self) -> date:
		return self._today()

	@property
	def marked_dates(self) -> CoverageSet:
		return self._marked

	@property
	def selected_date(self) -> date:
		return self._selected

	@property
	def displayed_month(self) -> date:
		"""First day of the month currently shown."""
		return self._month

	@property
	def can_go_next(self) -> bool:
		return self._month < month_start(self.today)

	# === coverage ===

	def set_scope(self, class_id: str, subject_id: str) -> None:
		"""Switch class+subject; the marker cache is dropped until refresh()."""
		if (class_id, subject_id) != (self.class_id, self.subject_id):
			self._marked = frozenset()
		self.class_id = class_id
		self.subject_id = subject_id

	async def get_marked_dates(self) -> CoverageSet:
		"""Fetch covered dates for the active class+subject and replace the cache."""
		if not self.class_id or not self.subject_id:
			raise InvalidStateError("Select a class and subject first")
		self._marked = await self._ledger.get_marked_dates(self.class_id, self.subject_id)
		_LOGGER.debug(f"{len(self._marked)} recorded date(s) for {self.class_id}/{self.subject_id}")
		return self._marked

	refresh = get_marked_dates

	def is_marked(self, day: date) -> bool:
		return day in self._marked

	# === selection and navigation ===

	def ensure_selectable(self, day: date) -> None:
		if day > self.today:
			raise FutureDateError(f"Cannot record a session for a future date: {day.isoformat()}")

	def select_date(self, day: date) -> date:
		"""Select a day to record; future days are refused."""
		self.ensure_selectable(day)
		self._selected = day
		self._month = month_start(day)
		return day

	def next_month(self) -> bool:
		"""Show the following month unless the current month is shown."""
		if not self.can_go_next:
			return False
		self._month = add_months(self._month, 1)
		return True

	def previous_month(self) -> None:
		self._month = add_months(self._month, -1)

	def month_grid(self) -> List[List[CalendarDay]]:
		"""Weeks of the displayed month, padded with neighbouring days."""
		today = self.today
		return [
			[
				CalendarDay(
					date=day,
					in_month=day.month == self._month.month,
					is_today=day == today,
					is_future=day > today,
					is_marked=day in self._marked,
					is_selected=day == self._selected,
				)
				for day in week
			]
			for week in self._grid.monthdatescalendar(self._month.year, self._month.month)
		]
