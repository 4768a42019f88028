"""MCP tool registration."""

import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP

from ..approval.oracle import ApprovalOracle
from ..config import Config
from ..rules_store import RulesStore
from .approval import register_approval_tools

logger = logging.getLogger(__name__)


def register_all_tools(
	mcp: FastMCP,
	config: Config,
	oracle: Optional[ApprovalOracle],
	store: RulesStore,
) -> None:
	"""Register all MCP tools."""
	register_approval_tools(mcp, config, oracle, store)
