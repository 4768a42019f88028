"""Shared test fakes and helpers for architect-mode tests."""

import asyncio
from typing import Callable, Iterable, Optional, Union
from unittest.mock import AsyncMock, MagicMock

from architect_mode.advisory import ArchitectureReview
from architect_mode.models import ApprovalRequest, ChunkKind, ResponseChunk


def text(payload: str) -> ResponseChunk:
	return ResponseChunk(ChunkKind.TEXT, payload)


def reasoning(payload: str) -> ResponseChunk:
	return ResponseChunk(ChunkKind.REASONING, payload)


Script = Union[Iterable[ResponseChunk], Exception]


class FakeBackend:
	"""Role backend that replays scripted chunk lists and records every call.

	Each script entry is consumed by one ``submit`` call. An entry may be a
	list of chunks or an exception to raise once the stream is iterated.
	A ``responder`` callable takes precedence over the script and receives
	(system_prompt, messages).
	"""

	def __init__(
		self,
		role: str,
		script: Optional[list[Script]] = None,
		responder: Optional[Callable[[str, list[dict]], Script]] = None,
	):
		self.role = role
		self.script = list(script or [])
		self.responder = responder
		self.calls: list[tuple[str, list[dict]]] = []

	async def submit(self, system_prompt: str, messages: list[dict]):
		self.calls.append((system_prompt, messages))
		if self.responder is not None:
			entry = self.responder(system_prompt, messages)
		else:
			entry = self.script.pop(0)
		if isinstance(entry, Exception):
			raise entry
		for chunk in entry:
			yield chunk

	def user_content(self, index: int) -> str:
		"""Content of the single user message of call ``index``."""
		return self.calls[index][1][0]["content"]


def architect_responder(
	plans: Optional[list[Script]] = None,
	evaluations: Optional[list[Script]] = None,
) -> Callable[[str, list[dict]], Script]:
	"""Build a responder that answers plan and evaluate calls from separate lists."""
	plans = list(plans or [])
	evaluations = list(evaluations or [])

	def respond(system_prompt: str, messages: list[dict]) -> Script:
		if "reviewing the Editor's implementation" in system_prompt:
			return evaluations.pop(0) if len(evaluations) > 1 else evaluations[0]
		return plans.pop(0) if len(plans) > 1 else plans[0]

	return respond


class ScriptedAdjudicator:
	"""Adjudicator returning canned responses and counting calls."""

	def __init__(self, *responses: Union[str, Exception], delay: float = 0.0):
		self.responses = list(responses)
		self.delay = delay
		self.calls: list[tuple[ApprovalRequest, str]] = []

	async def adjudicate(self, request: ApprovalRequest, pattern: str) -> str:
		self.calls.append((request, pattern))
		if self.delay:
			await asyncio.sleep(self.delay)
		response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
		if isinstance(response, Exception):
			raise response
		return response


class FakeAdvisor:
	"""Advisor flagging a fixed set of paths."""

	def __init__(self, flagged: Optional[dict] = None):
		self.flagged = flagged or {}
		self.calls: list[tuple[str, str]] = []

	async def analyze(self, file_path: str, new_content: str):
		self.calls.append((file_path, new_content))
		return self.flagged.get(file_path, ArchitectureReview())


def make_process(
	stdout_lines: Iterable[bytes] = (),
	returncode: int = 0,
	stderr: bytes = b"",
) -> MagicMock:
	"""Mock asyncio subprocess for a streaming CLI call."""
	process = MagicMock()
	process.returncode = None
	process.stdin = MagicMock()
	process.stdin.drain = AsyncMock()
	process.stdout = MagicMock()
	process.stdout.readline = AsyncMock(side_effect=list(stdout_lines) + [b""])
	process.stderr = MagicMock()
	process.stderr.read = AsyncMock(return_value=stderr)

	async def wait():
		process.returncode = returncode
		return returncode

	process.wait = AsyncMock(side_effect=wait)
	return process


def capture_tools(register_fn: Callable, *args) -> dict:
	"""Register tools on a mock MCP and return the captured tool functions.

	Args:
		register_fn: The registration function (e.g., register_approval_tools)
		*args: Arguments passed after the MCP instance

	Returns:
		Dict mapping tool name to the tool function
	"""
	captured = {}

	class MockMCP:
		def tool(self):
			def decorator(fn):
				captured[fn.__name__] = fn
				return fn
			return decorator

	register_fn(MockMCP(), *args)
	return captured
