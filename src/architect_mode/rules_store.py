"""JSON file store for the approval oracle's decision cache."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Mapping

logger = logging.getLogger(__name__)


class RulesStore:
	"""Loads and saves ``pattern -> allow`` mappings across sessions."""

	def __init__(self, path: Path):
		self.path = Path(path)

	def load(self) -> dict[str, bool]:
		"""Load rules. A missing or corrupt file yields an empty mapping."""
		if not self.path.exists():
			return {}

		try:
			with open(self.path) as f:
				data = json.load(f)
		except (json.JSONDecodeError, OSError) as e:
			logger.error(f"Failed to load approval rules from {self.path}: {e}")
			return {}

		if not isinstance(data, dict):
			logger.error(f"Approval rules file {self.path} does not contain an object")
			return {}

		rules = {str(k): v for k, v in data.items() if isinstance(v, bool)}
		skipped = len(data) - len(rules)
		if skipped:
			logger.warning(f"Skipped {skipped} non-boolean rule(s) in {self.path}")
		return rules

	def save(self, rules: Mapping[str, bool]) -> None:
		"""Write rules atomically."""
		self.path.parent.mkdir(parents=True, exist_ok=True)
		fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".rules-", suffix=".json")
		try:
			with os.fdopen(fd, "w") as f:
				json.dump(dict(rules), f, indent=2, sort_keys=True)
			os.replace(tmp_path, self.path)
		except BaseException:
			Path(tmp_path).unlink(missing_ok=True)
			raise
		logger.debug(f"Saved {len(rules)} approval rules to {self.path}")
