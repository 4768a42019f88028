"""
Fast-path matchers and cache-key generalization for the approval oracle.

Matchers run against the literal ``action:target`` string with path
separators normalized to forward slashes, so every built-in pattern is
written with ``/`` (Windows paths included).
"""

import logging
import re
from typing import Iterable, Optional

from ..errors import InvalidPatternError

logger = logging.getLogger(__name__)


# =============================================================================
# Built-in matchers
# =============================================================================

INSTANT_ALLOW: tuple[str, ...] = (
	r"^read:",
	r"(?i)^write:.*\.(ts|js|tsx|jsx|py|rb|go|rs|java|kt|swift|c|cpp|h|hpp|md|json|yaml|yml|toml|css|scss|less|html|xml|sql|sh|bash|zsh|fish|ps1|dockerfile|makefile|txt|csv|env\.example)$",
	r"^write:.*/src/",
	r"^write:.*/lib/",
	r"^write:.*/test/",
	r"^write:.*/tests/",
	r"^write:.*/spec/",
	r"^write:.*/components/",
	r"^write:.*/pages/",
	r"^write:.*/app/",
	r"^write:.*/public/",
	r"^write:.*/assets/",
	r"^write:.*/styles/",
	r"^write:.*/utils/",
	r"^write:.*/hooks/",
	r"^write:.*/services/",
	r"^write:.*/api/",
	r"^write:.*/models/",
	r"^write:.*/types/",
	r"^write:.*/interfaces/",
	r"^write:.*/contracts/",
	r"^write:.*/\.cline/",
	# Package managers and build tools
	r"^execute:npm (install|ci|run|test|build|start|lint|format|typecheck|dev|preview)",
	r"^execute:npx ",
	r"^execute:yarn ",
	r"^execute:pnpm ",
	r"^execute:bun ",
	r"^execute:deno ",
	r"^execute:cargo (build|run|test|check|clippy|fmt|add|remove)",
	r"^execute:go (build|run|test|mod|get|fmt|vet)",
	r"^execute:pip3? install",
	r"^execute:python3? ",
	r"^execute:ruby ",
	r"^execute:bundle ",
	r"^execute:gem install",
	r"^execute:mix ",
	r"^execute:elixir ",
	r"^execute:dotnet ",
	r"^execute:mvn ",
	r"^execute:gradle ",
	r"^execute:make($| )",
	r"^execute:cmake ",
	# Git
	r"^execute:git (status|diff|log|branch|checkout|add|commit|push|pull|fetch|stash|rebase|merge|clone|init|remote|tag|show|blame|reflog)",
	# Shell utilities
	r"^execute:ls",
	r"^execute:ll",
	r"^execute:la",
	r"^execute:cat ",
	r"^execute:head ",
	r"^execute:tail ",
	r"^execute:less ",
	r"^execute:more ",
	r"^execute:grep ",
	r"^execute:find ",
	r"^execute:echo ",
	r"^execute:printf ",
	r"^execute:mkdir ",
	r"^execute:touch ",
	r"^execute:cp ",
	r"^execute:mv ",
	r"^execute:cd ",
	r"^execute:pwd",
	r"^execute:which ",
	r"^execute:where ",
	r"^execute:whoami",
	r"^execute:date",
	r"^execute:time ",
	r"^execute:wc ",
	r"^execute:sort ",
	r"^execute:uniq ",
	r"^execute:sed ",
	r"^execute:awk ",
	r"^execute:cut ",
	r"^execute:tr ",
	r"^execute:tee ",
	r"^execute:xargs ",
	r"^execute:env($| )",
	r"^execute:export ",
	r"^execute:source ",
	# JS/TS runtimes, linters and test runners
	r"^execute:node ",
	r"^execute:ts-node ",
	r"^execute:tsx ",
	r"^execute:esbuild ",
	r"^execute:tsc($| )",
	r"^execute:eslint ",
	r"^execute:prettier ",
	r"^execute:jest ",
	r"^execute:vitest ",
	r"^execute:mocha ",
	r"^execute:pytest ",
	r"^execute:rspec ",
	r"^execute:phpunit ",
	# Containers and infra
	r"^execute:docker (build|run|ps|images|logs|exec|stop|start|restart|pull|push|compose)",
	r"^execute:docker-compose ",
	r"^execute:kubectl (get|describe|logs|apply|delete|exec|port-forward)",
	r"^execute:terraform (init|plan|apply|destroy|validate|fmt)",
	# Local network only
	r"^execute:curl .* localhost",
	r"^execute:curl .* 127\.0\.0\.1",
	r"^execute:wget .* localhost",
	r"^execute:http ",
	r"^browse:localhost",
	r"^browse:127\.0\.0\.1",
	r"^browse:file://",
	# Windows
	r"^execute:dir($| )",
	r"^execute:type ",
	r"^execute:copy ",
	r"^execute:move ",
	r"^execute:del (?!/[fqsap])",
	r"^execute:md ",
	r"^execute:rd ",
	r"^execute:set($| )",
)

INSTANT_DENY: tuple[str, ...] = (
	# Catastrophic file operations
	r"^execute:rm -rf /$",
	r"^execute:rm -rf /\*$",
	r"^execute:rm -rf ~$",
	r"^execute:rm -rf ~/\*$",
	r"^execute:rm -rf \.\./",
	r"^execute:dd if=.*of=/dev/",
	r"^execute:mkfs\.",
	r"^execute:fdisk ",
	r"^execute:parted ",
	r"^execute:rd /s /q [a-zA-Z]:/$",
	r"^execute:del /f /s /q [a-zA-Z]:/$",
	r"^execute:format [a-zA-Z]:",
	r"^execute:diskpart",
	# System modification
	r"^execute:.*>\s*/etc/",
	r"^execute:.*>\s*/usr/",
	r"^execute:.*>\s*/bin/",
	r"^execute:.*>\s*/sbin/",
	r"^execute:.*>\s*/boot/",
	r"^execute:.*>\s*/sys/",
	r"^execute:.*>\s*/proc/",
	r"(?i)^execute:.*>\s*[a-zA-Z]:/Windows/",
	r"^write:/etc/",
	r"^write:/usr/",
	r"^write:/bin/",
	r"^write:/sbin/",
	r"^write:/boot/",
	r"(?i)^write:[a-zA-Z]:/Windows/",
	r"(?i)^write:[a-zA-Z]:/Program Files",
	r"(?i)^write:[a-zA-Z]:/System",
	# Credential and secret files
	r"^write:.*/\.env$",
	r"^write:.*/\.env\.local$",
	r"^write:.*/\.env\.production$",
	r"^write:.*/\.ssh/",
	r"^write:.*/\.aws/",
	r"^write:.*/\.gcp/",
	r"^write:.*/\.azure/",
	r"(?i)^write:.*/credentials",
	r"(?i)^write:.*/secrets",
	r"^write:.*/\.netrc$",
	r"^write:.*/\.npmrc$",
	r"^write:.*/\.pypirc$",
	# Remote code execution and privilege escalation
	r"^execute:curl.*\|.*sh$",
	r"^execute:curl.*\|.*bash$",
	r"^execute:wget.*\|.*sh$",
	r"^execute:wget.*\|.*bash$",
	r"(?i)^execute:powershell.*-enc",
	r"(?i)^execute:powershell.*downloadstring",
	r"(?i)^execute:powershell.*invoke-webrequest.*\|.*iex",
	r"^execute:chmod 777",
	r"^execute:chmod -R 777",
	r"^execute:chown.*:.*/",
	r"^execute:sudo ",
	r"^execute:su ",
	r"^execute:passwd",
	r"^execute:visudo",
	r"(?i)^execute:runas ",
	# Network exfiltration
	r"^execute:.*\| curl",
	r"^execute:.*\| nc ",
	r"^execute:.*\| netcat",
	r"^execute:scp .* .*@.*:",
	r"^execute:rsync .* .*@.*:",
	# Keys and wallets
	r"(?i)^write:.*wallet",
	r"^write:.*\.key$",
	r"^write:.*\.pem$",
	r"(?i)^write:.*private.*key",
)


# =============================================================================
# Pattern generalization
# =============================================================================

GENERALIZED_EXTENSIONS = (
	"ts", "js", "tsx", "jsx", "py", "rb", "go", "rs", "java", "kt",
	"json", "yaml", "yml", "md", "css", "html",
)

EPHEMERAL_DIRS = (
	"node_modules", "dist", "build", ".next", "target", "vendor", "__pycache__",
)

_EXTENSION_RE = re.compile(
	r"/[^/]+\.(" + "|".join(GENERALIZED_EXTENSIONS) + r")$",
	re.IGNORECASE,
)
_EPHEMERAL_RES = [
	(re.compile(r"/" + re.escape(d) + r"/.*"), f"/{d}/*")
	for d in EPHEMERAL_DIRS
]
_PORT_RE = re.compile(r":\d+")
_NUMERIC_SEGMENT_RE = re.compile(r"/\d+(?=/|$)")


def normalize_path(target: str) -> str:
	"""Convert Windows path separators to forward slashes."""
	return target.replace("\\", "/")


def generalize_target(target: str) -> str:
	"""Abstract the variable parts of a target into wildcards."""
	result = normalize_path(target)
	result = _EXTENSION_RE.sub(r"/*.\1", result)
	for regex, replacement in _EPHEMERAL_RES:
		result = regex.sub(replacement, result)
	result = _PORT_RE.sub(":*", result)
	result = _NUMERIC_SEGMENT_RE.sub("/*", result)
	return result


def generalize(literal: str) -> str:
	"""
	Generalize an ``action:target`` string into its cache pattern.

	Idempotent: generalizing a pattern again yields the same pattern.
	"""
	action, sep, target = literal.partition(":")
	if not sep:
		return generalize_target(literal)
	return f"{action}:{generalize_target(target)}"


# =============================================================================
# Rule set
# =============================================================================

def compile_patterns(patterns: Iterable[str], source: str) -> list[re.Pattern]:
	"""
	Compile pattern strings, failing fast on the first invalid one.

	Raises:
		InvalidPatternError: If a pattern is empty, not a string, or not a valid regex
	"""
	compiled = []
	for pattern in patterns:
		if not isinstance(pattern, str) or not pattern.strip():
			raise InvalidPatternError(repr(pattern), source, "pattern must be a non-empty string")
		try:
			compiled.append(re.compile(pattern))
		except re.error as e:
			raise InvalidPatternError(pattern, source, str(e)) from e
	return compiled


class RuleSet:
	"""
	Ordered deny and allow matchers.

	Built-in matchers come first, caller-supplied ones are appended.
	Within each list the first match wins; callers check deny before allow.
	"""

	def __init__(
		self,
		custom_allow: Iterable[str] = (),
		custom_deny: Iterable[str] = (),
		base_allow: Iterable[str] = INSTANT_ALLOW,
		base_deny: Iterable[str] = INSTANT_DENY,
	):
		custom_allow = list(custom_allow)
		custom_deny = list(custom_deny)
		self._deny = tuple(
			compile_patterns(base_deny, "built-in deny")
			+ compile_patterns(custom_deny, "custom deny")
		)
		self._allow = tuple(
			compile_patterns(base_allow, "built-in allow")
			+ compile_patterns(custom_allow, "custom allow")
		)
		if custom_allow or custom_deny:
			logger.info(
				f"Rule set extended with {len(custom_allow)} allow and {len(custom_deny)} deny patterns"
			)

	@property
	def deny(self) -> tuple[re.Pattern, ...]:
		return self._deny

	@property
	def allow(self) -> tuple[re.Pattern, ...]:
		return self._allow

	def match_deny(self, literal: str) -> Optional[str]:
		"""Return the first deny pattern matching the literal, if any."""
		return _first_match(self._deny, literal)

	def match_allow(self, literal: str) -> Optional[str]:
		"""Return the first allow pattern matching the literal, if any."""
		return _first_match(self._allow, literal)


def _first_match(matchers: tuple[re.Pattern, ...], literal: str) -> Optional[str]:
	for matcher in matchers:
		if matcher.search(literal):
			return matcher.pattern
	return None
