"""Persona injection for role system prompts."""

import logging
from pathlib import Path
from typing import Optional

from .config import PersonaConfig

logger = logging.getLogger(__name__)


def load_persona_file(path: Path) -> str:
	"""Read an explicitly configured persona file. Missing files yield ""."""
	try:
		return Path(path).read_text(encoding="utf-8")
	except FileNotFoundError:
		logger.warning(f"Persona file not found: {path}")
		return ""
	except (OSError, UnicodeDecodeError) as e:
		logger.error(f"Failed to load persona from {path}: {e}")
		return ""


def inject(system_prompt: str, persona: str, position: str) -> str:
	"""Wrap the persona in <persona> tags and place it before or after the prompt."""
	if not persona.strip():
		return system_prompt

	wrapped = f"<persona>\n{persona.strip()}\n</persona>"

	if position == "prepend":
		return f"{wrapped}\n\n{system_prompt}"
	return f"{system_prompt}\n\n{wrapped}"


def inject_from_config(
	system_prompt: str,
	config: Optional[PersonaConfig],
	role: str,
) -> str:
	"""Inject the configured persona if it targets this role."""
	if config is None or not config.enabled or not config.markdown:
		return system_prompt

	if config.apply_to in (role, "both"):
		return inject(system_prompt, config.markdown, config.position)

	return system_prompt
