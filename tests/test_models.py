"""Tests for the shared data model."""

import dataclasses

import pytest

from architect_mode.models import (
	ActionKind,
	AdvisoryUpdate,
	ApprovalDecision,
	ApprovalRequest,
	ArchitectState,
	Phase,
	PersistScope,
	RoleResponse,
	UpdateType,
)

from .helpers import reasoning, text


class TestActionKind:
	def test_parse(self):
		assert ActionKind.parse("write") == ActionKind.WRITE
		assert ActionKind.parse(" EXECUTE ") == ActionKind.EXECUTE
		assert ActionKind.parse(ActionKind.DELETE) == ActionKind.DELETE

	def test_browser_alias(self):
		assert ActionKind.parse("browser") == ActionKind.BROWSE

	def test_unknown(self):
		with pytest.raises(ValueError):
			ActionKind.parse("teleport")


class TestApprovalRequest:
	def test_literal_normalizes_separators(self):
		req = ApprovalRequest(action="write", target="C:\\proj\\src\\a.py")
		assert req.literal == "write:C:/proj/src/a.py"
		assert req.target == "C:\\proj\\src\\a.py"

	def test_action_parsed(self):
		assert ApprovalRequest(action="browser", target="localhost").action == ActionKind.BROWSE

	def test_immutable(self):
		req = ApprovalRequest(action="read", target="/a", prior_decisions={"read:/a": "allow"})
		with pytest.raises(dataclasses.FrozenInstanceError):
			req.target = "/b"
		with pytest.raises(TypeError):
			req.prior_decisions["x"] = "deny"


def test_decision_to_dict():
	decision = ApprovalDecision(allow=False, persist=PersistScope.SESSION, reasoning="risky")
	assert decision.to_dict() == {"allow": False, "persist": "session", "reasoning": "risky"}


def test_state_snapshot_is_independent():
	state = ArchitectState(phase=Phase.EVALUATING, iteration=2, plan="p")
	snapshot = state.snapshot()
	snapshot.plan = "changed"

	assert state.plan == "p"
	assert snapshot.to_dict()["phase"] == "evaluating"
	assert Phase.COMPLETE.is_terminal and Phase.FAILED.is_terminal
	assert not Phase.PLANNING.is_terminal


def test_advisory_update_dict():
	update = AdvisoryUpdate(message="m", signals=("a: b",), recommendation="r", options=("x",))
	assert update.to_dict() == {
		"type": UpdateType.ADVISORY.value,
		"message": "m",
		"signals": ("a: b",),
		"recommendation": "r",
		"options": ("x",),
	}


def test_role_response_separates_kinds():
	response = RoleResponse([text("a"), reasoning("r1"), text("b"), reasoning("r2")])
	assert response.text == "ab"
	assert response.reasoning == "r1r2"
