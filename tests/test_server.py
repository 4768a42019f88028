"""Tests for server startup and tool registration."""

from pathlib import Path

import pytest

from architect_mode.approval.adjudicator import ClaudeCLIAdjudicator
from architect_mode.config import ApprovalOracleConfig, ArchitectConfig, Config
from architect_mode.rules_store import RulesStore
from architect_mode.server import build_oracle, create_server


@pytest.fixture
def config(tmp_path: Path) -> Config:
	return Config(config_dir=tmp_path / "config", data_dir=tmp_path / "data")


def test_server_tool_names(config):
	"""Server should register all approval tools."""
	mcp = create_server(config)
	tool_names = set(mcp._tool_manager._tools.keys())
	assert {
		"decide_approval", "get_cached_rules", "clear_cached_rules", "export_rules", "import_rules",
	} <= tool_names


def test_build_oracle_seeds_rules(config):
	store = RulesStore(config.rules_file)
	store.save({"execute:./deploy.sh": True})

	oracle = build_oracle(config, store)

	assert oracle.export_rules() == {"execute:./deploy.sh": True}
	assert isinstance(oracle.adjudicator, ClaudeCLIAdjudicator)
	assert oracle.adjudicator.model == "opus"


def test_build_oracle_uses_config(config):
	config.architect = ArchitectConfig(approval_oracle=ApprovalOracleConfig(
		adjudicator_model="sonnet",
		adjudicator_timeout=5,
		custom_allow_patterns=["^execute:just "],
	))
	oracle = build_oracle(config)

	assert oracle.adjudicator.model == "sonnet"
	assert oracle.adjudicator.timeout == 5
	assert oracle.rules.allow[-1].pattern == "^execute:just "


def test_build_oracle_disabled(config):
	config.architect.approval_oracle.enabled = False
	assert build_oracle(config) is None
