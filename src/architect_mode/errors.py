"""Exception hierarchy for architect-mode."""


class ArchitectModeError(Exception):
	"""Base exception for architect-mode errors."""
	pass


class InvalidPatternError(ArchitectModeError, ValueError):
	"""Raised at construction when a custom matcher pattern does not compile."""

	def __init__(self, pattern: str, source: str, reason: str):
		self.pattern = pattern
		self.source = source
		self.reason = reason
		super().__init__(f"Invalid {source} pattern {pattern!r}: {reason}")


class AdjudicatorError(ArchitectModeError):
	"""Raised when the external adjudicator call fails."""
	pass


class AdjudicationParseError(ArchitectModeError):
	"""Raised when the adjudicator response cannot be turned into a decision."""
	pass


class BackendError(ArchitectModeError):
	"""Raised when a role backend call fails."""
	pass


class OrchestratorBusyError(ArchitectModeError):
	"""Raised when a second run is started on an orchestrator that is already running."""
	pass
