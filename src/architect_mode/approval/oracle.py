"""
Approval Oracle - Gates file, command and network actions of a coding agent.

Decision order for each request:
1. Generalize ``action:target`` into a cache pattern
2. Cached deny -> deny
3. Deny matchers on the literal -> deny (cached)
4. Cached allow -> allow
5. Allow matchers on the literal -> allow (cached)
6. Escalate to the adjudicator; only ``always`` decisions are cached

Adjudicator failures fail open: the action is allowed once and nothing
is cached.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Mapping, Optional

from ..config import ApprovalOracleConfig
from ..models import ApprovalDecision, ApprovalRequest, PersistScope
from .adjudicator import Adjudicator, parse_adjudication
from .patterns import RuleSet, generalize

logger = logging.getLogger(__name__)

CACHED_RULE = "Cached rule"
BLOCKED_PATTERN = "Blocked pattern"
SAFE_PATTERN = "Safe pattern"
NO_ADJUDICATOR = "No adjudicator configured, allowing once"


@dataclass
class OracleStats:
	"""Counters for how requests were resolved."""
	cache_hits: int = 0
	denied: int = 0
	allowed: int = 0
	escalations: int = 0
	fail_open: int = 0

	def to_dict(self) -> dict:
		return {
			"cache_hits": self.cache_hits,
			"denied": self.denied,
			"allowed": self.allowed,
			"escalations": self.escalations,
			"fail_open": self.fail_open,
		}


class ApprovalOracle:
	"""
	Per-instance approval decision engine.

	Owns its rule set and decision cache; nothing is shared between
	instances. ``decide`` may be awaited concurrently: cache access is
	serialized and concurrent escalations for one pattern are
	single-flighted.
	"""

	def __init__(
		self,
		adjudicator: Optional[Adjudicator] = None,
		config: Optional[ApprovalOracleConfig] = None,
	):
		"""
		Initialize the oracle.

		Args:
			adjudicator: External reasoning backend for ambiguous requests
			config: Oracle settings, including custom allow/deny patterns

		Raises:
			InvalidPatternError: If a custom pattern does not compile
		"""
		self.config = config or ApprovalOracleConfig()
		self.adjudicator = adjudicator
		self.rules = RuleSet(
			custom_allow=self.config.custom_allow_patterns,
			custom_deny=self.config.custom_deny_patterns,
		)
		self.stats = OracleStats()

		self._persisted_rules: dict[str, bool] = {}
		self._cache_lock = threading.Lock()
		# pattern -> (lock, number of callers holding or waiting on it)
		self._inflight: dict[str, tuple[asyncio.Lock, int]] = {}

	async def decide(self, request: ApprovalRequest) -> ApprovalDecision:
		"""Decide whether a privileged action may proceed."""
		pattern = generalize(request.literal)
		literal = request.literal

		cached = self._get_cached(pattern)
		if cached is False:
			self.stats.cache_hits += 1
			return ApprovalDecision(allow=False, persist=PersistScope.ALWAYS, reasoning=CACHED_RULE)

		deny_match = self.rules.match_deny(literal)
		if deny_match is not None:
			self._set_cached(pattern, False)
			self.stats.denied += 1
			self._log_routine(f"Denied {literal} (matched {deny_match})")
			return ApprovalDecision(allow=False, persist=PersistScope.ALWAYS, reasoning=BLOCKED_PATTERN)

		if cached is True:
			self.stats.cache_hits += 1
			return ApprovalDecision(allow=True, persist=PersistScope.ALWAYS, reasoning=CACHED_RULE)

		allow_match = self.rules.match_allow(literal)
		if allow_match is not None:
			self._set_cached(pattern, True)
			self.stats.allowed += 1
			self._log_routine(f"Allowed {literal} (matched {allow_match})")
			return ApprovalDecision(allow=True, persist=PersistScope.ALWAYS, reasoning=SAFE_PATTERN)

		return await self._escalate(request, pattern)

	async def _escalate(self, request: ApprovalRequest, pattern: str) -> ApprovalDecision:
		"""Ask the adjudicator, one in-flight call per pattern."""
		lock, waiters = self._inflight.get(pattern, (None, 0))
		if lock is None:
			lock = asyncio.Lock()
		self._inflight[pattern] = (lock, waiters + 1)
		try:
			async with lock:
				# A concurrent caller may have cached an answer while we waited
				cached = self._get_cached(pattern)
				if cached is not None:
					self.stats.cache_hits += 1
					return ApprovalDecision(allow=cached, persist=PersistScope.ALWAYS, reasoning=CACHED_RULE)

				decision = await self._ask_adjudicator(request, pattern)
				if decision.persist == PersistScope.ALWAYS:
					self._set_cached(pattern, decision.allow)
				return decision
		finally:
			lock, waiters = self._inflight[pattern]
			if waiters == 1:
				del self._inflight[pattern]
			else:
				self._inflight[pattern] = (lock, waiters - 1)

	async def _ask_adjudicator(self, request: ApprovalRequest, pattern: str) -> ApprovalDecision:
		if self.adjudicator is None:
			self.stats.fail_open += 1
			logger.warning(f"No adjudicator for {request.literal}, allowing once")
			return ApprovalDecision(allow=True, persist=PersistScope.ONCE, reasoning=NO_ADJUDICATOR)

		self.stats.escalations += 1
		logger.info(f"Escalating {request.literal} (pattern {pattern})")

		try:
			raw = await self.adjudicator.adjudicate(request, pattern)
		except Exception as e:
			logger.exception(f"Adjudicator call failed for {request.literal}")
			self.stats.fail_open += 1
			return ApprovalDecision(
				allow=True,
				persist=PersistScope.ONCE,
				reasoning=f"Adjudicator error, allowing once: {e}",
			)

		try:
			decision = parse_adjudication(raw)
		except Exception as e:
			logger.warning(f"Unparseable adjudicator response for {request.literal}: {e}")
			self.stats.fail_open += 1
			return ApprovalDecision(
				allow=True,
				persist=PersistScope.ONCE,
				reasoning=f"Parse failed, allowing once: {e}",
			)

		logger.info(
			f"Adjudicator {'allowed' if decision.allow else 'denied'} {request.literal} "
			f"({decision.persist.value}): {decision.reasoning}"
		)
		return decision

	def _log_routine(self, message: str) -> None:
		if self.config.show_routine_approvals:
			logger.info(message)
		else:
			logger.debug(message)

	def _get_cached(self, pattern: str) -> Optional[bool]:
		with self._cache_lock:
			return self._persisted_rules.get(pattern)

	def _set_cached(self, pattern: str, allow: bool) -> None:
		with self._cache_lock:
			self._persisted_rules[pattern] = allow

	# Public API for persistence and inspection

	def get_persisted_rules(self) -> dict[str, bool]:
		"""Return a copy of the decision cache."""
		with self._cache_lock:
			return dict(self._persisted_rules)

	def export_rules(self) -> dict[str, bool]:
		"""Export the full cache as a plain mapping."""
		return self.get_persisted_rules()

	def import_rules(self, rules: Mapping[str, bool]) -> None:
		"""
		Merge rules into the cache without clearing it.

		Later entries win on key collision.

		Raises:
			ValueError: If a value is not a boolean
		"""
		validated = {}
		for pattern, allow in rules.items():
			if not isinstance(allow, bool):
				raise ValueError(f"Rule for {pattern!r} must be a boolean, got {type(allow).__name__}")
			validated[str(pattern)] = allow

		with self._cache_lock:
			self._persisted_rules.update(validated)
		logger.info(f"Imported {len(validated)} approval rules")

	def clear(self) -> None:
		"""Empty the decision cache."""
		with self._cache_lock:
			self._persisted_rules.clear()
		logger.info("Cleared approval rules")
