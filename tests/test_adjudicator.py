"""Tests for adjudicator response parsing and the Claude CLI adjudicator."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from architect_mode.approval.adjudicator import (
	ADJUDICATOR_SYSTEM_PROMPT,
	Adjudicator,
	ClaudeCLIAdjudicator,
	build_adjudication_prompt,
	parse_adjudication,
)
from architect_mode.errors import AdjudicationParseError, AdjudicatorError
from architect_mode.models import ApprovalRequest, PersistScope
from architect_mode.schemas import APPROVAL_DECISION_SCHEMA, extract_json

from .helpers import ScriptedAdjudicator


def make_request() -> ApprovalRequest:
	return ApprovalRequest(action="execute", target="./deploy.sh", context="ship the release")


def make_cli_process(stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0) -> MagicMock:
	process = MagicMock()
	process.communicate = AsyncMock(return_value=(stdout, stderr))
	process.returncode = returncode
	process.wait = AsyncMock(return_value=returncode)
	return process


class TestParseAdjudication:
	"""Tests for turning adjudicator text into a decision."""

	def test_valid(self):
		decision = parse_adjudication('{"allow": false, "persist": "always", "reasoning": "prod"}')
		assert decision.allow is False
		assert decision.persist == PersistScope.ALWAYS
		assert decision.reasoning == "prod"

	def test_fenced_json(self):
		decision = parse_adjudication('```json\n{"allow": true, "persist": "session", "reasoning": "ok"}\n```')
		assert decision.allow is True
		assert decision.persist == PersistScope.SESSION

	def test_invalid_persist_defaults_to_once(self):
		decision = parse_adjudication('{"allow": true, "persist": "forever", "reasoning": "ok"}')
		assert decision.persist == PersistScope.ONCE

	def test_missing_persist_defaults_to_once(self):
		decision = parse_adjudication('{"allow": true}')
		assert decision.persist == PersistScope.ONCE
		assert decision.reasoning == "No reason provided"

	def test_non_string_reasoning_gets_placeholder(self):
		decision = parse_adjudication('{"allow": true, "persist": "once", "reasoning": 7}')
		assert decision.reasoning == "No reason provided"

	@pytest.mark.parametrize("text", [
		"not json",
		"[true]",
		'{"persist": "always"}',
		'{"allow": "true"}',
		'{"allow": 1}',
		"",
	])
	def test_rejects(self, text):
		with pytest.raises(AdjudicationParseError):
			parse_adjudication(text)


class TestSchema:
	"""Tests for the response schema helpers."""

	def test_extract_json_strips_fences(self):
		assert extract_json('```\n{"a": 1}\n```') == '{"a": 1}'
		assert extract_json(' {"a": 1} ') == '{"a": 1}'

	def test_validate_reports_missing_key(self):
		is_valid, data, error = APPROVAL_DECISION_SCHEMA.validate('{"reasoning": "x"}')
		assert is_valid is False
		assert data == {"reasoning": "x"}
		assert "allow" in error

	def test_validate_ok(self):
		is_valid, data, error = APPROVAL_DECISION_SCHEMA.validate('{"allow": true}')
		assert is_valid is True
		assert data == {"allow": True}
		assert error is None


class TestBuildPrompt:
	def test_contains_request_fields(self):
		prompt = build_adjudication_prompt(make_request(), "execute:./deploy.sh")
		assert "Action: execute" in prompt
		assert "Target: ./deploy.sh" in prompt
		assert "Context: ship the release" in prompt
		assert "Generalized pattern: execute:./deploy.sh" in prompt


class TestClaudeCLIAdjudicator:
	"""Tests for the CLI-backed adjudicator with a mocked subprocess."""

	def test_satisfies_protocol(self):
		assert isinstance(ClaudeCLIAdjudicator(), Adjudicator)
		assert isinstance(ScriptedAdjudicator("{}"), Adjudicator)

	@pytest.mark.asyncio
	async def test_returns_result_field(self):
		envelope = json.dumps({"type": "result", "is_error": False, "result": '{"allow": true}'})
		process = make_cli_process(stdout=envelope.encode())

		with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)) as mock_exec:
			result = await ClaudeCLIAdjudicator(model="opus").adjudicate(make_request(), "execute:./deploy.sh")

		assert result == '{"allow": true}'
		args = mock_exec.call_args.args
		assert args[:4] == ("claude", "--print", "--output-format", "json")
		assert "--model" in args and args[args.index("--model") + 1] == "opus"
		assert args[args.index("--system-prompt") + 1] == ADJUDICATOR_SYSTEM_PROMPT
		sent = process.communicate.call_args.kwargs["input"].decode()
		assert "Generalized pattern: execute:./deploy.sh" in sent

	@pytest.mark.asyncio
	async def test_plain_text_output_passed_through(self):
		process = make_cli_process(stdout=b"Allow: yes, routine deploy\n")

		with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
			result = await ClaudeCLIAdjudicator().adjudicate(make_request(), "p")

		assert result == "Allow: yes, routine deploy\n"

	@pytest.mark.asyncio
	async def test_is_error_envelope_raises(self):
		envelope = json.dumps({"is_error": True, "result": "rate limited"})
		process = make_cli_process(stdout=envelope.encode())

		with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
			with pytest.raises(AdjudicatorError, match="rate limited"):
				await ClaudeCLIAdjudicator().adjudicate(make_request(), "p")

	@pytest.mark.asyncio
	async def test_nonzero_exit_raises(self):
		process = make_cli_process(stderr=b"auth failed", returncode=1)

		with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
			with pytest.raises(AdjudicatorError, match="auth failed"):
				await ClaudeCLIAdjudicator().adjudicate(make_request(), "p")

	@pytest.mark.asyncio
	async def test_missing_cli_raises(self):
		with patch("asyncio.create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError())):
			with pytest.raises(AdjudicatorError, match="not found"):
				await ClaudeCLIAdjudicator().adjudicate(make_request(), "p")

	@pytest.mark.asyncio
	async def test_timeout_kills_process(self):
		async def hang(input=None):
			await asyncio.sleep(10)

		process = make_cli_process()
		process.communicate = AsyncMock(side_effect=hang)

		with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
			with pytest.raises(AdjudicatorError, match="timed out"):
				await ClaudeCLIAdjudicator(timeout=0.01).adjudicate(make_request(), "p")

		process.kill.assert_called_once()
