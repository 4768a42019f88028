"""Tests for the CLI module."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from architect_mode.cli import main
from architect_mode.rules_store import RulesStore

from .helpers import FakeBackend, architect_responder, text


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path: Path, monkeypatch):
	monkeypatch.setenv("ARCHITECT_MODE_CONFIG_DIR", str(tmp_path / "config"))
	monkeypatch.setenv("ARCHITECT_MODE_DATA_DIR", str(tmp_path / "data"))
	monkeypatch.delenv("ARCHITECT_MODE_MAX_ITERATIONS", raising=False)
	with patch("architect_mode.cli.setup_logging"):
		yield tmp_path


def run_cli(*argv: str) -> None:
	with patch("sys.argv", ["architect-mode", *argv]):
		main()


def rules_file(tmp_path: Path) -> Path:
	return tmp_path / "data" / "approval_rules.json"


def test_no_command_prints_help(capsys):
	with pytest.raises(SystemExit) as exc_info:
		run_cli()
	assert exc_info.value.code == 1
	assert "usage" in capsys.readouterr().out.lower()


class TestDecide:
	def test_safe_write(self, capsys, isolated_dirs):
		run_cli("decide", "write", "/project/src/app.ts")

		result = json.loads(capsys.readouterr().out)
		assert result == {"allow": True, "persist": "always", "reasoning": "Safe pattern"}
		assert RulesStore(rules_file(isolated_dirs)).load() == {"write:/project/src/*.ts": True}

	def test_blocked(self, capsys):
		run_cli("decide", "execute", "rm -rf /")
		assert json.loads(capsys.readouterr().out)["allow"] is False

	def test_cached_rule_from_previous_run(self, capsys, isolated_dirs):
		RulesStore(rules_file(isolated_dirs)).save({"execute:./deploy.sh": True})

		run_cli("decide", "execute", "./deploy.sh")

		assert json.loads(capsys.readouterr().out)["reasoning"] == "Cached rule"

	def test_unknown_action(self):
		with pytest.raises(SystemExit) as exc_info:
			run_cli("decide", "teleport", "/x")
		assert exc_info.value.code == 2


class TestRules:
	def test_empty(self, capsys):
		run_cli("rules")
		assert "No cached approval rules" in capsys.readouterr().out

	def test_lists_rules(self, capsys, isolated_dirs):
		RulesStore(rules_file(isolated_dirs)).save({"execute:rm -rf /": False})
		run_cli("rules")
		out = capsys.readouterr().out
		assert "execute:rm -rf /" in out
		assert "deny" in out

	def test_clear(self, isolated_dirs):
		store = RulesStore(rules_file(isolated_dirs))
		store.save({"a": True})
		run_cli("rules", "--clear")
		assert store.load() == {}

	def test_import(self, isolated_dirs):
		store = RulesStore(rules_file(isolated_dirs))
		store.save({"a": True})
		source = isolated_dirs / "team_rules.json"
		source.write_text(json.dumps({"b": False}))

		run_cli("rules", "--import", str(source))

		assert store.load() == {"a": True, "b": False}

	def test_import_rejects_non_boolean(self, isolated_dirs):
		source = isolated_dirs / "bad.json"
		source.write_text(json.dumps({"b": "no"}))

		with pytest.raises(SystemExit) as exc_info:
			run_cli("rules", "--import", str(source))
		assert exc_info.value.code == 1


class TestRun:
	"""Tests for the run command with fake role backends."""

	def backends(self, evaluation: str):
		architect = FakeBackend("architect", responder=architect_responder(
			plans=[[text("Plan body")]],
			evaluations=[[text(evaluation)]],
		))
		editor = FakeBackend("editor", responder=lambda system, messages: [text("impl")])
		return architect, editor

	def test_approved_exits_zero(self, capsys):
		with patch("architect_mode.cli.build_role_backends", return_value=self.backends("APPROVED: good")):
			with pytest.raises(SystemExit) as exc_info:
				run_cli("run", "Add a health check")

		assert exc_info.value.code == 0
		assert "Approved after 1 iteration" in capsys.readouterr().out

	def test_exhausted_exits_one(self, capsys):
		architect, editor = self.backends("REVISION NEEDED: no")
		with patch("architect_mode.cli.build_role_backends", return_value=(architect, editor)):
			with pytest.raises(SystemExit) as exc_info:
				run_cli("run", "Add a health check", "--max-iterations", "2")

		assert exc_info.value.code == 1
		assert len(editor.calls) == 2
		assert "Not approved after 2 iteration" in capsys.readouterr().out

	def test_context_file(self, isolated_dirs):
		context_file = isolated_dirs / "context.md"
		context_file.write_text("Uses FastAPI")
		architect, editor = self.backends("APPROVED")

		with patch("architect_mode.cli.build_role_backends", return_value=(architect, editor)):
			with pytest.raises(SystemExit):
				run_cli("run", "Add a health check", "--context-file", str(context_file))

		assert "Uses FastAPI" in architect.user_content(0)
