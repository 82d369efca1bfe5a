"""Configuration loading for classledger."""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import voluptuous as vol
from dotenv import load_dotenv

from .const import (
	COLLECTION_ATTENDANCE,
	COLLECTION_EXAM_RESULTS,
	COLLECTION_USERS,
	DEFAULT_DATABASE,
	DEFAULT_MAX_SCORE,
	DEFAULT_TIMEOUT_SECONDS,
	ENV_ATTENDANCE_COLLECTION,
	ENV_DATABASE,
	ENV_DEFAULT_MAX_SCORE,
	ENV_EXAM_COLLECTION,
	ENV_ID_TOKEN,
	ENV_PROJECT_ID,
	ENV_TIMEOUT,
	ENV_USERS_COLLECTION,
)
from .exceptions import ConfigError

_LOGGER = logging.getLogger(__name__)

_NON_EMPTY = vol.All(str, str.strip, vol.Length(min=1))

CONFIG_SCHEMA = vol.Schema(
	{
		vol.Required(ENV_PROJECT_ID): _NON_EMPTY,
		vol.Optional(ENV_DATABASE, default=DEFAULT_DATABASE): _NON_EMPTY,
		vol.Optional(ENV_ID_TOKEN, default=None): vol.Any(None, _NON_EMPTY),
		vol.Optional(ENV_TIMEOUT, default=DEFAULT_TIMEOUT_SECONDS): vol.All(
			vol.Coerce(float), vol.Range(min=0, min_included=False)
		),
		vol.Optional(ENV_ATTENDANCE_COLLECTION, default=COLLECTION_ATTENDANCE): _NON_EMPTY,
		vol.Optional(ENV_EXAM_COLLECTION, default=COLLECTION_EXAM_RESULTS): _NON_EMPTY,
		vol.Optional(ENV_USERS_COLLECTION, default=COLLECTION_USERS): _NON_EMPTY,
		vol.Optional(ENV_DEFAULT_MAX_SCORE, default=DEFAULT_MAX_SCORE): vol.All(
			vol.Coerce(int), vol.Range(min=1)
		),
	},
	extra=vol.REMOVE_EXTRA,
)


@dataclass(frozen=True)
class LedgerConfig:
	"""Validated settings for the store client and ledger."""
	project_id: str = "local"
	database: str = DEFAULT_DATABASE
	id_token: Optional[str] = None
	timeout: float = DEFAULT_TIMEOUT_SECONDS
	attendance_collection: str = COLLECTION_ATTENDANCE
	exam_collection: str = COLLECTION_EXAM_RESULTS
	users_collection: str = COLLECTION_USERS
	default_max_score: int = DEFAULT_MAX_SCORE


def config_from_mapping(values: Mapping[str, Any]) -> LedgerConfig:
	"""Validate a mapping of CLASSLEDGER_* values into a LedgerConfig."""
	# Treat empty environment values as unset
	cleaned: Dict[str, Any] = {k: v for k, v in values.items() if v not in (None, "")}
	try:
		data = CONFIG_SCHEMA(cleaned)
	except vol.Invalid as e:
		raise ConfigError(f"Invalid configuration: {e}") from e

	return LedgerConfig(
		project_id=data[ENV_PROJECT_ID],
		database=data[ENV_DATABASE],
		id_token=data[ENV_ID_TOKEN],
		timeout=data[ENV_TIMEOUT],
		attendance_collection=data[ENV_ATTENDANCE_COLLECTION],
		exam_collection=data[ENV_EXAM_COLLECTION],
		users_collection=data[ENV_USERS_COLLECTION],
		default_max_score=data[ENV_DEFAULT_MAX_SCORE],
	)


def load_config(dotenv_path: Optional[str] = None) -> LedgerConfig:
	"""Load configuration from the environment, reading a .env file first."""
	load_dotenv(dotenv_path)
	config = config_from_mapping(os.environ)
	_LOGGER.debug(f"Loaded configuration for project {config.project_id} ({config.database})")
	return config
