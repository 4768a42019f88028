"""
Shared data model for the approval oracle and the architect loop.

Covers:
- Approval requests and decisions
- Orchestration state and the updates emitted by a run
- Typed content chunks produced by role backends
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import ClassVar, Mapping, Optional, Union


class ActionKind(str, Enum):
	"""Category of privileged operation being gated."""
	READ = "read"
	WRITE = "write"
	EXECUTE = "execute"
	BROWSE = "browse"
	DELETE = "delete"

	@classmethod
	def parse(cls, value: Union[str, "ActionKind"]) -> "ActionKind":
		"""Parse an action kind, accepting the legacy "browser" spelling."""
		if isinstance(value, cls):
			return value
		normalized = str(value).strip().lower()
		if normalized == "browser":
			return cls.BROWSE
		return cls(normalized)


class PersistScope(str, Enum):
	"""How long a decision should be trusted without re-adjudication."""
	ONCE = "once"
	SESSION = "session"
	ALWAYS = "always"


@dataclass(frozen=True)
class ApprovalRequest:
	"""A request to perform a privileged action."""
	action: ActionKind
	target: str
	context: str = ""
	prior_decisions: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

	def __post_init__(self):
		object.__setattr__(self, "action", ActionKind.parse(self.action))
		if not isinstance(self.prior_decisions, MappingProxyType):
			object.__setattr__(self, "prior_decisions", MappingProxyType(dict(self.prior_decisions)))

	@property
	def literal(self) -> str:
		"""The path-normalized ``action:target`` string matchers run against."""
		target = self.target.replace("\\", "/")
		return f"{self.action.value}:{target}"


@dataclass(frozen=True)
class ApprovalDecision:
	"""Outcome of an approval request."""
	allow: bool
	persist: PersistScope
	reasoning: str

	def to_dict(self) -> dict:
		return {
			"allow": self.allow,
			"persist": self.persist.value,
			"reasoning": self.reasoning,
		}


# =============================================================================
# Orchestration state
# =============================================================================

class Phase(str, Enum):
	"""Phase of the architect loop."""
	PLANNING = "planning"
	IMPLEMENTING = "implementing"
	EVALUATING = "evaluating"
	COMPLETE = "complete"
	FAILED = "failed"

	@property
	def is_terminal(self) -> bool:
		return self in (Phase.COMPLETE, Phase.FAILED)


@dataclass
class ArchitectState:
	"""Mutable state owned by one orchestration run."""
	phase: Phase = Phase.PLANNING
	iteration: int = 0
	plan: Optional[str] = None
	implementation: Optional[str] = None
	evaluation: Optional[str] = None
	thinking: Optional[str] = None

	def snapshot(self) -> "ArchitectState":
		"""Return an independent copy safe to hand to callers."""
		return ArchitectState(
			phase=self.phase,
			iteration=self.iteration,
			plan=self.plan,
			implementation=self.implementation,
			evaluation=self.evaluation,
			thinking=self.thinking,
		)

	def to_dict(self) -> dict:
		data = asdict(self)
		data["phase"] = self.phase.value
		return data


class UpdateType(str, Enum):
	"""Tag of an update emitted by the architect loop."""
	PHASE = "phase"
	THINKING = "thinking"
	PLAN = "plan"
	IMPLEMENTATION = "implementation"
	EVALUATION = "evaluation"
	ADVISORY = "architecture_review"
	COMPLETE = "complete"
	MAX_ITERATIONS = "max_iterations"


class _Update:
	type: ClassVar[UpdateType]

	def to_dict(self) -> dict:
		data = {"type": self.type.value}
		for key, value in asdict(self).items():
			data[key] = value.value if isinstance(value, Enum) else value
		return data


@dataclass(frozen=True)
class PhaseUpdate(_Update):
	type: ClassVar[UpdateType] = UpdateType.PHASE
	phase: Phase
	iteration: int


@dataclass(frozen=True)
class ThinkingUpdate(_Update):
	type: ClassVar[UpdateType] = UpdateType.THINKING
	content: str


@dataclass(frozen=True)
class PlanUpdate(_Update):
	type: ClassVar[UpdateType] = UpdateType.PLAN
	content: str
	thinking: str = ""


@dataclass(frozen=True)
class ImplementationUpdate(_Update):
	type: ClassVar[UpdateType] = UpdateType.IMPLEMENTATION
	content: str


@dataclass(frozen=True)
class EvaluationUpdate(_Update):
	type: ClassVar[UpdateType] = UpdateType.EVALUATION
	content: str
	thinking: str = ""


@dataclass(frozen=True)
class AdvisoryUpdate(_Update):
	type: ClassVar[UpdateType] = UpdateType.ADVISORY
	message: str
	signals: tuple[str, ...] = ()
	recommendation: str = ""
	options: tuple[str, ...] = ()


@dataclass(frozen=True)
class CompleteUpdate(_Update):
	type: ClassVar[UpdateType] = UpdateType.COMPLETE
	iterations: int


@dataclass(frozen=True)
class MaxIterationsUpdate(_Update):
	type: ClassVar[UpdateType] = UpdateType.MAX_ITERATIONS
	iterations: int


ArchitectUpdate = Union[
	PhaseUpdate,
	ThinkingUpdate,
	PlanUpdate,
	ImplementationUpdate,
	EvaluationUpdate,
	AdvisoryUpdate,
	CompleteUpdate,
	MaxIterationsUpdate,
]


# =============================================================================
# Role backend responses
# =============================================================================

class ChunkKind(str, Enum):
	"""Kind of content chunk produced by a role backend."""
	TEXT = "text"
	REASONING = "reasoning"


@dataclass(frozen=True)
class ResponseChunk:
	"""One typed piece of a streamed model response."""
	kind: ChunkKind
	payload: str


@dataclass
class RoleResponse:
	"""A fully drained response, chunks kept in emission order."""
	chunks: list[ResponseChunk] = field(default_factory=list)

	@property
	def text(self) -> str:
		return "".join(c.payload for c in self.chunks if c.kind == ChunkKind.TEXT)

	@property
	def reasoning(self) -> str:
		return "".join(c.payload for c in self.chunks if c.kind == ChunkKind.REASONING)
