"""Custom exceptions for classledger."""


class ClassLedgerError(Exception):
	"""Base exception for classledger errors."""
	pass


class ConfigError(ClassLedgerError):
	"""Configuration is missing or invalid."""
	pass


class StoreError(ClassLedgerError):
	"""Backing store operation failed."""
	pass


class StoreConnectionError(StoreError):
	"""Connection to the backing store failed."""
	pass


class StoreAPIError(StoreError):
	"""Backing store rejected the request."""

	def __init__(self, message: str, status: int = 0):
		super().__init__(message)
		self.status = status


class StoreDataError(StoreError):
	"""Document parsing or encoding error."""
	pass


class SessionError(ClassLedgerError):
	"""Base exception for session ledger errors."""
	pass


class SessionLoadError(SessionError):
	"""Loading a session failed. Safe to retry with the same arguments."""
	pass


class SessionValidationError(SessionError):
	"""Session failed validation before any write was attempted."""

	def __init__(self, message: str, student_ids=None):
		super().__init__(message)
		self.student_ids = list(student_ids or [])


class SessionWriteError(SessionError):
	"""Writing the session was rejected. State is unchanged."""
	pass


class SessionLockedError(SessionError):
	"""Mutation attempted on a locked session."""
	pass


class InvalidStateError(SessionError):
	"""Operation is not valid in the current session state."""
	pass


class UnknownStudentError(SessionError):
	"""Student is not part of the session roster."""
	pass


class FutureDateError(ClassLedgerError):
	"""Sessions cannot be recorded for future dates."""
	pass
