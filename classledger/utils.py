"""Date helpers shared by the ledger, calendar and reports."""

import logging
import re
from datetime import date, datetime
from typing import Optional

from .const import DATE_FORMAT

_LOGGER = logging.getLogger(__name__)

_DATE_PARTS = re.compile(r"^\s*(\d{1,4})[/-](\d{1,2})[/-](\d{1,4})\s*$")


def format_date(value: date) -> str:
	"""Serialize a calendar day in the stored DD/MM/YYYY form."""
	return value.strftime(DATE_FORMAT)


def parse_date_lenient(value) -> Optional[date]:
	"""Parse DD/MM/YYYY, DD-MM-YYYY or YYYY-MM-DD, with or without padding.

	Returns None when the value cannot be understood.
	"""
	if isinstance(value, datetime):
		return value.date()
	if isinstance(value, date):
		return value
	if not isinstance(value, str):
		return None

	match = _DATE_PARTS.match(value)
	if not match:
		_LOGGER.debug(f"Unrecognised date string: {value!r}")
		return None

	first, middle, last = match.groups()
	try:
		if len(last) == 4:
			return date(int(last), int(middle), int(first))
		if len(first) == 4:
			return date(int(first), int(middle), int(last))
	except ValueError:
		_LOGGER.debug(f"Out of range date string: {value!r}")
		return None
	return None


def month_start(value: date) -> date:
	return value.replace(day=1)


def add_months(value: date, months: int) -> date:
	"""Shift the first day of value's month by a number of months."""
	index = value.year * 12 + (value.month - 1) + months
	return date(index // 12, index % 12 + 1, 1)
