"""
Role backends - request/response channels for the architect and editor roles.

Both roles share one contract: ``submit(system_prompt, messages)`` returns
a finite, one-shot async stream of typed chunks. The concrete backend here
drives the Claude CLI with ``--output-format stream-json``; architect and
editor differ only in configuration.
"""

import asyncio
import json
import logging
import os
from typing import AsyncIterator, Optional, Protocol, runtime_checkable

from .config import ArchitectConfig
from .errors import BackendError
from .models import ChunkKind, ResponseChunk, RoleResponse

logger = logging.getLogger(__name__)

ARCHITECT_ROLE = "architect"
EDITOR_ROLE = "editor"


@runtime_checkable
class RoleBackend(Protocol):
	"""A model endpoint that streams typed content chunks."""

	role: str

	def submit(self, system_prompt: str, messages: list[dict]) -> AsyncIterator[ResponseChunk]:
		...


async def collect_response(
	backend: RoleBackend,
	system_prompt: str,
	messages: list[dict],
) -> RoleResponse:
	"""Drain a backend stream completely, preserving chunk order."""
	response = RoleResponse()
	async for chunk in backend.submit(system_prompt, messages):
		response.chunks.append(chunk)
	return response


def render_messages(messages: list[dict]) -> str:
	"""Flatten a message history into a single CLI prompt."""
	if len(messages) == 1 and messages[0].get("role") == "user":
		return str(messages[0].get("content", ""))

	parts = []
	for message in messages:
		role = str(message.get("role", "user")).capitalize()
		parts.append(f"{role}:\n{message.get('content', '')}")
	return "\n\n".join(parts)


def parse_stream_line(line: str) -> list[ResponseChunk]:
	"""Map one stream-json event to chunks. Non-assistant events yield nothing."""
	line = line.strip()
	if not line:
		return []

	try:
		event = json.loads(line)
	except json.JSONDecodeError:
		logger.debug(f"Skipping non-JSON stream line: {line[:100]}")
		return []

	if not isinstance(event, dict) or event.get("type") != "assistant":
		return []

	chunks = []
	for block in event.get("message", {}).get("content", []) or []:
		block_type = block.get("type")
		if block_type == "text" and block.get("text"):
			chunks.append(ResponseChunk(ChunkKind.TEXT, block["text"]))
		elif block_type == "thinking" and block.get("thinking"):
			chunks.append(ResponseChunk(ChunkKind.REASONING, block["thinking"]))
	return chunks


class ClaudeCLIBackend:
	"""
	Role backend that streams from ``claude --print --output-format stream-json``.

	Model and provider identifiers are passed through untouched. Token
	budgets are only forwarded when set.
	"""

	def __init__(
		self,
		role: str,
		model: str,
		provider: str = "anthropic",
		thinking_budget: Optional[int] = None,
		max_tokens: Optional[int] = None,
		cwd: Optional[str] = None,
		timeout: Optional[float] = None,
		executable: str = "claude",
	):
		self.role = role
		self.model = model
		self.provider = provider
		self.thinking_budget = thinking_budget
		self.max_tokens = max_tokens
		self.cwd = cwd
		self.timeout = timeout
		self.executable = executable

	def _build_command(self, system_prompt: str) -> list[str]:
		return [
			self.executable,
			"--print",
			"--output-format", "stream-json",
			"--verbose",
			"--max-turns", "1",
			"--model", self.model,
			"--system-prompt", system_prompt,
		]

	def _build_env(self) -> dict[str, str]:
		env = os.environ.copy()
		if self.thinking_budget is not None:
			env["MAX_THINKING_TOKENS"] = str(self.thinking_budget)
		if self.max_tokens is not None:
			env["CLAUDE_CODE_MAX_OUTPUT_TOKENS"] = str(self.max_tokens)
		return env

	async def submit(self, system_prompt: str, messages: list[dict]) -> AsyncIterator[ResponseChunk]:
		"""
		Stream chunks for one request.

		Raises:
			BackendError: If the CLI is missing, times out or exits non-zero
		"""
		prompt = render_messages(messages)
		logger.info(f"[{self.role}] Sending prompt ({len(prompt)} chars) to {self.provider}/{self.model}")

		try:
			process = await asyncio.create_subprocess_exec(
				*self._build_command(system_prompt),
				stdin=asyncio.subprocess.PIPE,
				stdout=asyncio.subprocess.PIPE,
				stderr=asyncio.subprocess.PIPE,
				cwd=self.cwd,
				env=self._build_env(),
			)
		except FileNotFoundError as e:
			raise BackendError("Claude CLI not found. Is it installed?") from e

		stderr_task = asyncio.create_task(process.stderr.read())
		try:
			process.stdin.write(prompt.encode())
			await process.stdin.drain()
			process.stdin.close()

			while True:
				try:
					line = await asyncio.wait_for(process.stdout.readline(), timeout=self.timeout)
				except asyncio.TimeoutError as e:
					raise BackendError(f"[{self.role}] No output for {self.timeout} seconds") from e
				if not line:
					break
				for chunk in parse_stream_line(line.decode(errors="replace")):
					yield chunk

			returncode = await process.wait()
			stderr = await stderr_task
			if returncode != 0:
				error_msg = stderr.decode(errors="replace").strip() or f"exit code {returncode}"
				logger.error(f"[{self.role}] Claude CLI error: {error_msg}")
				raise BackendError(f"Claude CLI failed for {self.role}: {error_msg}")
		finally:
			if process.returncode is None:
				process.kill()
				await process.wait()
			if not stderr_task.done():
				stderr_task.cancel()


def build_role_backends(
	config: ArchitectConfig,
	cwd: Optional[str] = None,
) -> tuple[ClaudeCLIBackend, ClaudeCLIBackend]:
	"""Build the architect and editor backends from config."""
	architect = ClaudeCLIBackend(
		role=ARCHITECT_ROLE,
		model=config.architect_model,
		provider=config.architect_provider,
		thinking_budget=config.thinking_budget,
		max_tokens=config.max_tokens,
		cwd=cwd,
	)
	# Thinking budget only applies to the architect
	editor = ClaudeCLIBackend(
		role=EDITOR_ROLE,
		model=config.editor_model,
		provider=config.editor_provider,
		max_tokens=config.max_tokens,
		cwd=cwd,
	)
	return architect, editor
