"""
Adjudicator - External reasoning backend for ambiguous approval requests.

The oracle only escalates requests that no fast-path matcher resolves.
An adjudicator returns raw model text; turning that text into a decision
(and failing open when it can't) is the oracle's job.
"""

import asyncio
import json
import logging
import os
from typing import Optional, Protocol, runtime_checkable

from ..errors import AdjudicationParseError, AdjudicatorError
from ..models import ApprovalDecision, ApprovalRequest, PersistScope
from ..schemas import APPROVAL_DECISION_SCHEMA

logger = logging.getLogger(__name__)

DEFAULT_ADJUDICATOR_MODEL = "opus"
DEFAULT_ADJUDICATOR_TIMEOUT = 60

ADJUDICATOR_SYSTEM_PROMPT = """You approve/deny actions for an autonomous coding agent.

Principles:
- Optimize for efficiency. Prefer "always" for recurring safe patterns.
- Use "once" for sensitive or one-off actions.
- Deny genuinely dangerous actions: credential access, system modification, data exfiltration.
- When uncertain, allow with "once".
- Be concise.

Respond ONLY with valid JSON, no markdown:
{"allow":true,"persist":"always","reasoning":"brief reason"}"""


@runtime_checkable
class Adjudicator(Protocol):
	"""Single request/response exchange with an external reasoning service."""

	async def adjudicate(self, request: ApprovalRequest, pattern: str) -> str:
		...


def build_adjudication_prompt(request: ApprovalRequest, pattern: str) -> str:
	"""Build the user message sent to the adjudicator."""
	return (
		f"Action: {request.action.value}\n"
		f"Target: {request.target}\n"
		f"Context: {request.context}\n"
		f"Generalized pattern: {pattern}\n"
		"\n"
		"Decide."
	)


def parse_adjudication(text: str) -> ApprovalDecision:
	"""
	Parse adjudicator output into a decision.

	``allow`` must be a boolean. An invalid or missing ``persist`` becomes
	``once`` and a non-string ``reasoning`` gets a placeholder.

	Raises:
		AdjudicationParseError: If the text is not a JSON object with a boolean ``allow``
	"""
	is_valid, data, error = APPROVAL_DECISION_SCHEMA.validate(text)
	if not is_valid:
		raise AdjudicationParseError(error or "Invalid adjudicator response")

	try:
		persist = PersistScope(data.get("persist"))
	except ValueError:
		persist = PersistScope.ONCE

	reasoning = data.get("reasoning")
	if not isinstance(reasoning, str):
		reasoning = "No reason provided"

	return ApprovalDecision(allow=data["allow"], persist=persist, reasoning=reasoning)


class ClaudeCLIAdjudicator:
	"""
	Adjudicator backed by the Claude CLI in print mode.

	Each call spawns ``claude --print --output-format json`` and reads the
	``result`` field of the JSON envelope.
	"""

	def __init__(
		self,
		model: str = DEFAULT_ADJUDICATOR_MODEL,
		timeout: float = DEFAULT_ADJUDICATOR_TIMEOUT,
		cwd: Optional[str] = None,
		executable: str = "claude",
	):
		self.model = model
		self.timeout = timeout
		self.cwd = cwd
		self.executable = executable

	async def adjudicate(self, request: ApprovalRequest, pattern: str) -> str:
		"""
		Ask the CLI for a decision on one request.

		Raises:
			AdjudicatorError: If the CLI is missing, exits non-zero or times out
		"""
		prompt = build_adjudication_prompt(request, pattern)

		try:
			process = await asyncio.create_subprocess_exec(
				self.executable,
				"--print",
				"--output-format", "json",
				"--model", self.model,
				"--system-prompt", ADJUDICATOR_SYSTEM_PROMPT,
				stdin=asyncio.subprocess.PIPE,
				stdout=asyncio.subprocess.PIPE,
				stderr=asyncio.subprocess.PIPE,
				cwd=self.cwd,
				env=os.environ.copy(),
			)
		except FileNotFoundError as e:
			raise AdjudicatorError("Claude CLI not found. Is it installed?") from e

		try:
			stdout, stderr = await asyncio.wait_for(
				process.communicate(input=prompt.encode()),
				timeout=self.timeout,
			)
		except asyncio.TimeoutError as e:
			process.kill()
			await process.wait()
			raise AdjudicatorError(f"Adjudicator timed out after {self.timeout} seconds") from e

		if process.returncode != 0:
			error_msg = stderr.decode(errors="replace").strip() if stderr else ""
			raise AdjudicatorError(f"Claude CLI failed: {error_msg or f'exit code {process.returncode}'}")

		output = stdout.decode(errors="replace") if stdout else ""
		try:
			envelope = json.loads(output)
		except json.JSONDecodeError:
			# Older CLIs print plain text even when asked for json
			return output

		if isinstance(envelope, dict):
			if envelope.get("is_error"):
				raise AdjudicatorError(f"Claude CLI reported an error: {envelope.get('result', '')}")
			if "result" in envelope:
				return str(envelope["result"])
		return output
