"""architect-mode MCP server exposing the approval oracle."""

import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP

from .approval.adjudicator import ClaudeCLIAdjudicator
from .approval.oracle import ApprovalOracle
from .config import Config
from .rules_store import RulesStore
from .tools import register_all_tools

logger = logging.getLogger(__name__)


def build_oracle(config: Config, store: Optional[RulesStore] = None) -> Optional[ApprovalOracle]:
	"""Build the oracle from config and seed it with persisted rules. None when disabled."""
	oracle_config = config.architect.approval_oracle
	if not oracle_config.enabled:
		logger.info("Approval oracle disabled")
		return None

	oracle = ApprovalOracle(
		adjudicator=ClaudeCLIAdjudicator(
			model=oracle_config.adjudicator_model,
			timeout=oracle_config.adjudicator_timeout,
		),
		config=oracle_config,
	)
	if store is not None:
		rules = store.load()
		if rules:
			oracle.import_rules(rules)
	return oracle


def create_server(config: Config) -> FastMCP:
	"""Create the MCP server with all tools registered."""
	store = RulesStore(config.rules_file)
	oracle = build_oracle(config, store)

	mcp = FastMCP("architect-mode")
	register_all_tools(mcp, config, oracle, store)
	return mcp
