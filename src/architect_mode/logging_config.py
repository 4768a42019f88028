"""Centralized logging configuration for architect-mode."""

import logging
import os
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "architect_mode"

# Approval targets are logged verbatim; commands often carry credentials
SECRET_PATTERNS = [
	re.compile(r"(?i)(authorization:\s*(?:bearer|basic|token)\s+)([^\s'\"]+)"),
	re.compile(r"(?i)((?:api[_-]?key|access[_-]?token|token|password|passwd|secret)[=:]\s*)([^\s'\"&]+)"),
	re.compile(r"(?i)(://[^\s:/@]+:)([^\s@/]+)(?=@)"),
]
REDACTED = "[REDACTED]"


class SecretRedactionFilter(logging.Filter):
	"""Redact credentials embedded in commands and URLs before they are written."""

	def filter(self, record: logging.LogRecord) -> bool:
		if isinstance(record.msg, str) and not record.args:
			record.msg = redact(record.msg)
		return True


def redact(message: str) -> str:
	"""Replace the secret part of each known credential shape with a marker."""
	for pattern in SECRET_PATTERNS:
		message = pattern.sub(lambda m: m.group(1) + REDACTED, message)
	return message


def setup_logging(
	level: Optional[str] = None,
	log_dir: Optional[Path] = None,
	stream=None,
) -> logging.Logger:
	"""
	Set up logging with console and file handlers.

	Args:
		level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to env var or INFO.
		log_dir: Directory for log files; no file handler when None
		stream: Console stream (default stderr, stdout is reserved for MCP stdio)

	Returns:
		Configured package logger
	"""
	level = level or os.getenv("LOG_LEVEL", "INFO")
	log_level = getattr(logging, level.upper(), logging.INFO)

	logger = logging.getLogger(ROOT_LOGGER)
	logger.setLevel(log_level)

	# Avoid duplicate handlers
	if logger.handlers:
		return logger

	detailed_formatter = logging.Formatter(
		"%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s",
		datefmt="%Y-%m-%d %H:%M:%S",
	)
	simple_formatter = logging.Formatter(
		"%(asctime)s [%(levelname)s] %(message)s",
		datefmt="%H:%M:%S",
	)

	redaction = SecretRedactionFilter()

	console_handler = logging.StreamHandler(stream or sys.stderr)
	console_handler.setLevel(log_level)
	console_handler.setFormatter(simple_formatter)
	console_handler.addFilter(redaction)
	logger.addHandler(console_handler)

	if log_dir is not None:
		log_path = Path(log_dir)
		log_path.mkdir(parents=True, exist_ok=True)

		file_handler = RotatingFileHandler(
			log_path / f"{ROOT_LOGGER}.log",
			maxBytes=10 * 1024 * 1024,  # 10 MB
			backupCount=5,
		)
		file_handler.setLevel(logging.DEBUG)  # File gets all logs
		file_handler.setFormatter(detailed_formatter)
		file_handler.addFilter(redaction)
		logger.addHandler(file_handler)

	return logger
