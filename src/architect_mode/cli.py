"""CLI for architect-mode: serve, decide, rules and run commands."""

import argparse
import asyncio
import json
import sys
from contextlib import aclosing
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .backends import build_role_backends
from .config import load_config
from .logging_config import setup_logging
from .models import ActionKind, ApprovalRequest, UpdateType
from .orchestrator import ArchitectOrchestrator
from .rules_store import RulesStore
from .server import build_oracle, create_server

console = Console()

PHASE_STYLES = {
	"planning": "cyan",
	"implementing": "magenta",
	"evaluating": "yellow",
}


def cmd_serve(args: argparse.Namespace) -> None:
	"""Run the MCP server (stdio transport)."""
	config = load_config()
	setup_logging(log_dir=config.log_dir)
	create_server(config).run()


def cmd_decide(args: argparse.Namespace) -> None:
	"""Decide a single approval request and print the decision."""
	config = load_config()
	setup_logging(level=args.log_level, log_dir=config.log_dir)

	try:
		action = ActionKind.parse(args.action)
	except ValueError:
		console.print(f"[red]Unknown action '{args.action}'[/red]")
		sys.exit(2)

	store = RulesStore(config.rules_file)
	oracle = build_oracle(config, store)
	if oracle is None:
		print(json.dumps({"allow": True, "persist": "once", "reasoning": "Oracle disabled"}, indent=2))
		return

	request = ApprovalRequest(action=action, target=args.target, context=args.context)
	decision = asyncio.run(oracle.decide(request))
	store.save(oracle.export_rules())
	print(json.dumps(decision.to_dict(), indent=2))


def cmd_rules(args: argparse.Namespace) -> None:
	"""Show, clear or import persisted approval rules."""
	config = load_config()
	store = RulesStore(config.rules_file)
	rules = store.load()

	if args.clear:
		store.save({})
		console.print(f"Cleared {len(rules)} rule(s) from {config.rules_file}")
		return

	if args.import_file:
		try:
			imported = json.loads(Path(args.import_file).read_text())
		except (OSError, json.JSONDecodeError) as e:
			console.print(f"[red]Failed to read {args.import_file}: {e}[/red]")
			sys.exit(1)
		if not isinstance(imported, dict) or not all(isinstance(v, bool) for v in imported.values()):
			console.print("[red]Rules file must be a JSON object of pattern -> true/false[/red]")
			sys.exit(1)
		rules.update(imported)
		store.save(rules)
		console.print(f"Imported {len(imported)} rule(s), {len(rules)} total")
		return

	if not rules:
		console.print("No cached approval rules.")
		return

	table = Table(title=f"Approval rules ({config.rules_file})")
	table.add_column("Pattern")
	table.add_column("Decision")
	for pattern, allow in sorted(rules.items()):
		table.add_row(pattern, "[green]allow[/green]" if allow else "[red]deny[/red]")
	console.print(table)


def _render_update(update) -> None:
	"""Print one architect loop update."""
	if update.type == UpdateType.PHASE:
		style = PHASE_STYLES.get(update.phase.value, "white")
		console.rule(f"[{style}]Iteration {update.iteration}: {update.phase.value}[/{style}]")
	elif update.type == UpdateType.THINKING:
		console.print(Panel(update.content, title="Thinking", border_style="dim"))
	elif update.type == UpdateType.PLAN:
		console.print(Panel(update.content, title="Plan", border_style="cyan"))
	elif update.type == UpdateType.IMPLEMENTATION:
		console.print(Panel(update.content, title="Implementation", border_style="magenta"))
	elif update.type == UpdateType.EVALUATION:
		console.print(Panel(update.content, title="Evaluation", border_style="yellow"))
	elif update.type == UpdateType.ADVISORY:
		body = update.message + "\n\nOptions:\n" + "\n".join(f"- {o}" for o in update.options)
		console.print(Panel(body, title="Architecture review", border_style="red"))
	elif update.type == UpdateType.COMPLETE:
		console.print(f"[green]Approved after {update.iterations} iteration(s)[/green]")
	elif update.type == UpdateType.MAX_ITERATIONS:
		console.print(f"[red]Not approved after {update.iterations} iteration(s)[/red]")


async def _run_loop(orchestrator: ArchitectOrchestrator, task: str, context: str) -> int:
	async with aclosing(orchestrator.run(task, context)) as updates:
		async for update in updates:
			_render_update(update)
	return 0 if orchestrator.get_state().phase.value == "complete" else 1


def cmd_run(args: argparse.Namespace) -> None:
	"""Run the Architect/Editor loop for a task."""
	config = load_config()
	setup_logging(level=args.log_level, log_dir=config.log_dir)

	architect_config = config.architect
	if args.max_iterations is not None:
		architect_config.max_iterations = args.max_iterations
		architect_config.__post_init__()

	context = ""
	if args.context_file:
		context = Path(args.context_file).read_text()

	cwd = str(Path(args.cwd).expanduser()) if args.cwd else None
	architect, editor = build_role_backends(architect_config, cwd=cwd)
	orchestrator = ArchitectOrchestrator(
		config=architect_config,
		architect_backend=architect,
		editor_backend=editor,
		oracle=build_oracle(config, RulesStore(config.rules_file)),
	)
	sys.exit(asyncio.run(_run_loop(orchestrator, args.task, context)))


def main() -> None:
	"""CLI entry point."""
	parser = argparse.ArgumentParser(
		prog="architect-mode",
		description="Architect/Editor refinement loop and approval oracle for coding agents",
	)
	subparsers = parser.add_subparsers(dest="command")

	# serve
	serve_parser = subparsers.add_parser("serve", help="Run approval oracle MCP server (stdio)")
	serve_parser.set_defaults(func=cmd_serve)

	# decide
	decide_parser = subparsers.add_parser("decide", help="Decide one approval request")
	decide_parser.add_argument("action", help="read, write, execute, browse or delete")
	decide_parser.add_argument("target", help="File path, command or URL")
	decide_parser.add_argument("--context", default="", help="What the action is for")
	decide_parser.add_argument("--log-level", default="WARNING", help="Log level")
	decide_parser.set_defaults(func=cmd_decide)

	# rules
	rules_parser = subparsers.add_parser("rules", help="Show or manage cached approval rules")
	rules_parser.add_argument("--clear", action="store_true", help="Delete all cached rules")
	rules_parser.add_argument("--import", dest="import_file", default=None, help="Merge rules from a JSON file")
	rules_parser.set_defaults(func=cmd_rules)

	# run
	run_parser = subparsers.add_parser("run", help="Run the Architect/Editor loop")
	run_parser.add_argument("task", help="Task description")
	run_parser.add_argument("--context-file", default=None, help="File with initial codebase context")
	run_parser.add_argument("--max-iterations", type=int, default=None, help="Iteration budget (1-10)")
	run_parser.add_argument("--cwd", default=None, help="Working directory for the Claude CLI")
	run_parser.add_argument("--log-level", default="INFO", help="Log level")
	run_parser.set_defaults(func=cmd_run)

	args = parser.parse_args()

	if not args.command:
		parser.print_help()
		sys.exit(1)

	args.func(args)


if __name__ == "__main__":
	main()
