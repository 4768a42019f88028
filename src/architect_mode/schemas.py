"""
Structured output schemas for Claude CLI responses.

Defines response schemas used to validate the small JSON documents
the adjudicator is asked to return.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\n?|\n?```")


@dataclass
class ResponseSchema:
	"""A schema for structured output from Claude CLI."""

	name: str
	description: str
	json_schema: dict[str, Any] = field(default_factory=dict)

	def validate(self, response_str: str) -> tuple[bool, Optional[dict[str, Any]], Optional[str]]:
		"""
		Parse and validate a response against this schema.

		Returns:
			Tuple of (is_valid, parsed_data, error_message)
		"""
		try:
			data = json.loads(extract_json(response_str))
		except json.JSONDecodeError as e:
			return False, None, f"Invalid JSON: {e}"

		if not isinstance(data, dict):
			return False, None, f"Expected a JSON object, got '{type(data).__name__}'"

		required = self.json_schema.get("required", [])
		properties = self.json_schema.get("properties", {})

		for key in required:
			if key not in data:
				return False, data, f"Missing required key: {key}"

		# Best-effort type checks
		for key, prop_schema in properties.items():
			if key in data:
				expected_type = prop_schema.get("type")
				if expected_type and not _check_type(data[key], expected_type):
					return False, data, f"Key '{key}' expected type '{expected_type}', got '{type(data[key]).__name__}'"

		return True, data, None


def extract_json(text: str) -> str:
	"""Strip markdown code fences around a JSON document."""
	return _FENCE_RE.sub("", text or "").strip()


def _check_type(value: Any, expected: str) -> bool:
	"""Check if a value matches the expected JSON schema type."""
	type_map = {
		"string": str,
		"number": (int, float),
		"integer": int,
		"boolean": bool,
		"array": list,
		"object": dict,
	}
	expected_type = type_map.get(expected)
	if expected_type is None:
		return True
	if expected in ("number", "integer") and isinstance(value, bool):
		return False
	return isinstance(value, expected_type)


# Only "allow" is strictly typed; persist and reasoning are repaired by the caller.
APPROVAL_DECISION_SCHEMA = ResponseSchema(
	name="approval_decision",
	description="Allow/deny decision for a privileged agent action",
	json_schema={
		"type": "object",
		"required": ["allow"],
		"properties": {
			"allow": {"type": "boolean", "description": "Whether the action is allowed"},
			"persist": {"enum": ["once", "session", "always"], "description": "once, session or always"},
			"reasoning": {"description": "Brief reason"},
		},
	},
)
