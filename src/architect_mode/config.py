"""Configuration system using platformdirs for cross-platform paths."""

import logging
import os
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import platformdirs

logger = logging.getLogger(__name__)

APP_NAME = "architect-mode"
APP_AUTHOR = "architect-mode"

MIN_ITERATIONS = 1
MAX_ITERATIONS = 10
DEFAULT_MAX_ITERATIONS = 5


def clamp_iterations(value: Any) -> int:
	"""Clamp an iteration budget into [MIN_ITERATIONS, MAX_ITERATIONS]."""
	try:
		iterations = int(value)
	except (TypeError, ValueError):
		logger.warning(f"Invalid max_iterations {value!r}, using {DEFAULT_MAX_ITERATIONS}")
		return DEFAULT_MAX_ITERATIONS
	return max(MIN_ITERATIONS, min(MAX_ITERATIONS, iterations))


@dataclass
class PersonaConfig:
	"""Persona text injected into role system prompts."""
	enabled: bool = False
	markdown: str = ""
	apply_to: str = "both"  # architect, editor, both
	position: str = "prepend"  # prepend, append

	def __post_init__(self) -> None:
		if self.apply_to not in ("architect", "editor", "both"):
			raise ValueError(f"persona.apply_to must be architect, editor or both, got {self.apply_to!r}")
		if self.position not in ("prepend", "append"):
			raise ValueError(f"persona.position must be prepend or append, got {self.position!r}")


@dataclass
class ApprovalOracleConfig:
	"""Approval oracle settings."""
	enabled: bool = True
	show_routine_approvals: bool = False
	custom_allow_patterns: list[str] = field(default_factory=list)
	custom_deny_patterns: list[str] = field(default_factory=list)
	adjudicator_model: str = "opus"
	adjudicator_timeout: float = 60.0


@dataclass
class ArchitectConfig:
	"""Architect loop settings. Token budgets of None mean unlimited."""
	architect_model: str = "opus"
	architect_provider: str = "anthropic"
	editor_model: str = "sonnet"
	editor_provider: str = "anthropic"
	thinking_budget: Optional[int] = None
	max_tokens: Optional[int] = None
	max_iterations: int = DEFAULT_MAX_ITERATIONS
	context_char_budget: Optional[int] = None
	persona: PersonaConfig = field(default_factory=PersonaConfig)
	approval_oracle: ApprovalOracleConfig = field(default_factory=ApprovalOracleConfig)

	def __post_init__(self) -> None:
		self.max_iterations = clamp_iterations(self.max_iterations)


@dataclass
class Config:
	"""Central configuration with XDG/platform conventions."""

	config_dir: Path = field(default_factory=lambda: Path(platformdirs.user_config_dir(APP_NAME)))
	data_dir: Path = field(default_factory=lambda: Path(platformdirs.user_data_dir(APP_NAME)))

	# Derived paths
	rules_file: Path = field(init=False)
	log_dir: Path = field(init=False)

	architect: ArchitectConfig = field(default_factory=ArchitectConfig)

	def __post_init__(self) -> None:
		self.rules_file = self.data_dir / "approval_rules.json"
		self.log_dir = self.data_dir / "logs"

	def ensure_dirs(self) -> None:
		"""Create all required directories."""
		self.config_dir.mkdir(parents=True, exist_ok=True)
		self.data_dir.mkdir(parents=True, exist_ok=True)
		self.log_dir.mkdir(parents=True, exist_ok=True)


def _apply_env_overrides(config: Config) -> Config:
	"""Apply ARCHITECT_MODE_* environment variable overrides."""
	env_map = {
		"ARCHITECT_MODE_CONFIG_DIR": "config_dir",
		"ARCHITECT_MODE_DATA_DIR": "data_dir",
	}
	for env_key, attr in env_map.items():
		val = os.getenv(env_key)
		if val:
			setattr(config, attr, Path(val))

	max_iterations = os.getenv("ARCHITECT_MODE_MAX_ITERATIONS")
	if max_iterations:
		config.architect.max_iterations = clamp_iterations(max_iterations)

	# Recompute derived paths after overrides
	config.__post_init__()
	return config


def _merge_dataclass(instance: Any, data: dict) -> None:
	"""Set known dataclass fields from a TOML table, ignoring unknown keys."""
	names = {f.name for f in fields(instance)}
	for key, val in data.items():
		if key in names:
			setattr(instance, key, val)
		else:
			logger.warning(f"Ignoring unknown config key {key!r} for {type(instance).__name__}")


def _apply_toml(config: Config) -> Config:
	"""Apply config.toml overrides if file exists."""
	toml_path = config.config_dir / "config.toml"
	if not toml_path.exists():
		return config

	with open(toml_path, "rb") as f:
		data = tomllib.load(f)

	path_fields = {"config_dir", "data_dir"}
	for key, val in data.items():
		if key in path_fields:
			setattr(config, key, Path(os.path.expanduser(val)))

	architect_data = dict(data.get("architect", {}))
	persona_data = architect_data.pop("persona", None)
	oracle_data = architect_data.pop("approval_oracle", None)

	architect = ArchitectConfig()
	_merge_dataclass(architect, architect_data)
	if persona_data:
		persona_file = persona_data.pop("markdown_file", None)
		if persona_file:
			from .persona import load_persona_file
			persona_data["markdown"] = load_persona_file(Path(os.path.expanduser(persona_file)))
		_merge_dataclass(architect.persona, persona_data)
		architect.persona.__post_init__()
	if oracle_data:
		_merge_dataclass(architect.approval_oracle, oracle_data)
	architect.__post_init__()
	config.architect = architect

	# Recompute derived paths after toml overrides
	config.__post_init__()
	return config


def load_config() -> Config:
	"""Load config with precedence: env vars > config.toml > defaults."""
	# Env first so ARCHITECT_MODE_CONFIG_DIR decides which config.toml is read
	config = _apply_env_overrides(Config())
	config = _apply_toml(config)
	config = _apply_env_overrides(config)
	config.ensure_dirs()
	return config


# Singleton
_config: Config | None = None


def get_config() -> Config:
	"""Get or create the global config instance."""
	global _config
	if _config is None:
		_config = load_config()
	return _config
