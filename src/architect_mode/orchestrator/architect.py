"""
Architect Orchestrator - Bounded Architect/Editor refinement loop.

Each iteration runs three phases in strict order:
- Planning: the architect turns task + context into a plan
- Implementing: the editor turns the plan into file changes
- Evaluating: the architect reviews the implementation

An evaluation starting with "APPROVED" completes the run. Otherwise the
implementation and feedback are appended to the context and the loop
continues until the iteration budget runs out.

Role-call failures propagate to the caller; there is no retry.
"""

import asyncio
import logging
import weakref
from typing import AsyncIterator, Optional

from ..advisory import Advisor, review_implementation
from ..approval.oracle import ApprovalOracle
from ..backends import RoleBackend, collect_response
from ..config import ArchitectConfig, clamp_iterations
from ..errors import OrchestratorBusyError
from ..models import (
	ActionKind,
	ApprovalDecision,
	ApprovalRequest,
	ArchitectState,
	ArchitectUpdate,
	CompleteUpdate,
	EvaluationUpdate,
	ImplementationUpdate,
	MaxIterationsUpdate,
	Phase,
	PersistScope,
	PhaseUpdate,
	PlanUpdate,
	ThinkingUpdate,
)
from . import prompts

logger = logging.getLogger(__name__)

ORACLE_DISABLED = "Oracle disabled"


class ArchitectOrchestrator:
	"""
	Drives one Architect/Editor run at a time.

	Use one instance per task. ``get_state`` and ``request_approval`` are
	safe to call while ``run`` is in flight.
	"""

	def __init__(
		self,
		config: ArchitectConfig,
		architect_backend: RoleBackend,
		editor_backend: RoleBackend,
		oracle: Optional[ApprovalOracle] = None,
		advisor: Optional[Advisor] = None,
		types_context: str = "",
	):
		"""
		Initialize the orchestrator.

		Args:
			config: Loop settings (iteration budget is clamped)
			architect_backend: Backend for the planning/reviewing role
			editor_backend: Backend for the implementing role
			oracle: Approval oracle for privileged actions, None to auto-allow
			advisor: Optional advisory reviewer run after each implementation
			types_context: Type definitions prepended to the context and used in review
		"""
		self.config = config
		self.max_iterations = clamp_iterations(config.max_iterations)
		self.architect_backend = architect_backend
		self.editor_backend = editor_backend
		self.oracle = oracle
		self.advisor = advisor
		self.types_context = types_context

		self.approval_history: list[tuple[ApprovalRequest, ApprovalDecision]] = []
		self._state = ArchitectState()
		self._active: Optional[weakref.ref] = None

	def run(
		self,
		task: str,
		context: str,
		cancel_event: Optional[asyncio.Event] = None,
	) -> AsyncIterator[ArchitectUpdate]:
		"""
		Start a run, returning an async iterator with one update per observable event.

		The run stays in progress until the iterator is exhausted, closed or
		garbage collected. Hosts that may stop consuming early should wrap it in
		``contextlib.aclosing`` so the instance is free for the next run.

		Args:
			task: What the agent should accomplish
			context: Initial codebase context
			cancel_event: Checked between phases; once set, no further updates are emitted

		Raises:
			OrchestratorBusyError: If a run is already in progress on this instance
			BackendError: If a role call fails
		"""
		if self.running:
			raise OrchestratorBusyError("A run is already in progress on this orchestrator")
		updates = self._run(task, context, cancel_event)
		self._active = weakref.ref(updates)
		return updates

	@property
	def running(self) -> bool:
		"""True while the last run's iterator can still produce updates."""
		updates = self._active() if self._active is not None else None
		return updates is not None and updates.ag_frame is not None

	async def _run(
		self,
		task: str,
		context: str,
		cancel_event: Optional[asyncio.Event],
	) -> AsyncIterator[ArchitectUpdate]:
		def cancelled() -> bool:
			if cancel_event is not None and cancel_event.is_set():
				logger.info(f"Run cancelled at iteration {self._state.iteration} ({self._state.phase.value})")
				return True
			return False

		self._state = ArchitectState()
		if self.types_context:
			context = f"{self.types_context}\n\n{context}"
		base_context = context
		feedback: list[str] = []

		while self._state.iteration < self.max_iterations:
			if cancelled():
				return
			self._state.iteration += 1
			iteration = self._state.iteration

			# Phase 1: Architect plans
			self._enter(Phase.PLANNING)
			yield PhaseUpdate(Phase.PLANNING, iteration)

			plan = await collect_response(
				self.architect_backend,
				prompts.plan_system_prompt(self.config.persona),
				prompts.plan_messages(task, context),
			)
			self._state.plan = plan.text
			self._state.thinking = plan.reasoning or None

			if plan.reasoning:
				yield ThinkingUpdate(plan.reasoning)
			yield PlanUpdate(plan.text, plan.reasoning)

			# Phase 2: Editor implements
			if cancelled():
				return
			self._enter(Phase.IMPLEMENTING)
			yield PhaseUpdate(Phase.IMPLEMENTING, iteration)

			response = await collect_response(
				self.editor_backend,
				prompts.implement_system_prompt(self.config.persona),
				prompts.implement_messages(plan.text, context),
			)
			# Editor reasoning is discarded
			implementation = response.text
			self._state.implementation = implementation
			yield ImplementationUpdate(implementation)

			if self.advisor is not None:
				advisory = await review_implementation(self.advisor, implementation)
				if advisory is not None:
					yield advisory

			# Phase 3: Architect evaluates
			if cancelled():
				return
			self._enter(Phase.EVALUATING)
			yield PhaseUpdate(Phase.EVALUATING, iteration)

			evaluation = await collect_response(
				self.architect_backend,
				prompts.evaluate_system_prompt(self.config.persona, self.types_context),
				prompts.evaluate_messages(task, plan.text, implementation, context),
			)
			self._state.evaluation = evaluation.text
			if evaluation.reasoning:
				self._state.thinking = evaluation.reasoning
				yield ThinkingUpdate(evaluation.reasoning)
			yield EvaluationUpdate(evaluation.text, evaluation.reasoning)

			if prompts.is_approved(evaluation.text):
				self._enter(Phase.COMPLETE)
				yield CompleteUpdate(iteration)
				return

			feedback.append(prompts.feedback_section(implementation, evaluation.text))
			context = prompts.bound_context(
				base_context,
				feedback,
				self.config.context_char_budget,
			)

		self._enter(Phase.FAILED)
		logger.warning(f"Architect loop hit max iterations ({self._state.iteration}) without approval")
		yield MaxIterationsUpdate(self._state.iteration)

	def _enter(self, phase: Phase) -> None:
		logger.info(f"Iteration {self._state.iteration}: {self._state.phase.value} -> {phase.value}")
		self._state.phase = phase

	async def request_approval(
		self,
		action: ActionKind | str,
		target: str,
		context: str,
	) -> ApprovalDecision:
		"""Route a privileged action through the oracle, or allow it when none is configured."""
		request = ApprovalRequest(action=action, target=target, context=context)
		if self.oracle is None:
			decision = ApprovalDecision(allow=True, persist=PersistScope.ONCE, reasoning=ORACLE_DISABLED)
		else:
			decision = await self.oracle.decide(request)

		self.approval_history.append((request, decision))
		return decision

	def get_state(self) -> ArchitectState:
		"""Return a read-only snapshot of the current state."""
		return self._state.snapshot()
