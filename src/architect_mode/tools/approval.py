"""Approval oracle tools - decide, inspect and manage cached approval rules."""

import json
import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP

from ..approval.oracle import ApprovalOracle
from ..config import Config
from ..models import ActionKind, ApprovalRequest
from ..rules_store import RulesStore

logger = logging.getLogger(__name__)


def register_approval_tools(
	mcp: FastMCP,
	config: Config,
	oracle: Optional[ApprovalOracle],
	store: RulesStore,
) -> None:
	"""Register approval oracle tools. ``oracle`` is None when the oracle is disabled."""

	def _persist() -> None:
		if oracle is not None:
			store.save(oracle.export_rules())

	@mcp.tool()
	async def decide_approval(action: str, target: str, context: str = "") -> str:
		"""
		Evaluate whether an action by an autonomous coding agent should be approved.

		Call this BEFORE any file write, terminal command, browser action or deletion.
		Common safe and dangerous patterns are resolved instantly; ambiguous ones are
		escalated to a reasoning model. Decisions are cached by generalized pattern.

		Args:
			action: One of read, write, execute, browse, delete
			target: File path, command or URL the action applies to
			context: Brief description of the task this action is part of

		Returns:
			JSON with allow (bool), persist (once|session|always) and reasoning
		"""
		try:
			kind = ActionKind.parse(action)
		except ValueError:
			valid = ", ".join(k.value for k in ActionKind)
			return json.dumps({"error": f"Unknown action '{action}'. Expected one of: {valid}"})

		if oracle is None:
			return json.dumps({"allow": True, "persist": "once", "reasoning": "Oracle disabled"}, indent=2)

		before = oracle.export_rules()
		decision = await oracle.decide(ApprovalRequest(action=kind, target=target, context=context))
		if oracle.export_rules() != before:
			_persist()
		return json.dumps(decision.to_dict(), indent=2)

	@mcp.tool()
	async def get_cached_rules() -> str:
		"""Return all cached approval rules (pattern -> allow) for debugging."""
		rules = oracle.export_rules() if oracle is not None else {}
		stats = oracle.stats.to_dict() if oracle is not None else {}
		return json.dumps({"rules": rules, "count": len(rules), "stats": stats}, indent=2)

	@mcp.tool()
	async def clear_cached_rules() -> str:
		"""Clear all cached approval rules, in memory and on disk."""
		if oracle is not None:
			oracle.clear()
			_persist()
		return json.dumps({"success": True, "message": "Cached rules cleared"})

	@mcp.tool()
	async def export_rules() -> str:
		"""Export cached approval rules as a JSON object for use in another session."""
		rules = oracle.export_rules() if oracle is not None else {}
		return json.dumps(rules, indent=2, sort_keys=True)

	@mcp.tool()
	async def import_rules(rules_json: str) -> str:
		"""
		Merge approval rules into the cache. Existing rules are kept; imported ones win.

		Args:
			rules_json: JSON object mapping pattern strings to true/false
		"""
		if oracle is None:
			return json.dumps({"success": False, "error": "Oracle disabled"})

		try:
			rules = json.loads(rules_json)
		except json.JSONDecodeError as e:
			return json.dumps({"success": False, "error": f"Invalid JSON: {e}"})
		if not isinstance(rules, dict):
			return json.dumps({"success": False, "error": "Expected a JSON object"})

		try:
			oracle.import_rules(rules)
		except ValueError as e:
			return json.dumps({"success": False, "error": str(e)})

		_persist()
		return json.dumps({"success": True, "imported": len(rules), "total": len(oracle.export_rules())})
