"""
Advisory review of editor output.

An advisor looks at each file the editor declares and reports free-text
signals. Reviews never block the loop; they only produce an advisory
update for the host to show.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Protocol, runtime_checkable

from .models import AdvisoryUpdate

logger = logging.getLogger(__name__)

FILE_BLOCK_RE = re.compile(r'<file path="([^"]+)">([\s\S]*?)</file>')

ADVISORY_OPTIONS = (
	"Proceed with current implementation",
	"Revise to address concerns",
)


@dataclass
class ArchitectureReview:
	"""Result of analyzing one file change."""
	needs_review: bool = False
	signals: list[str] = field(default_factory=list)
	recommendation: str = ""
	options: list[str] = field(default_factory=list)


@runtime_checkable
class Advisor(Protocol):
	"""Analyzes a proposed file change. Must not raise for clean files."""

	async def analyze(self, file_path: str, new_content: str) -> ArchitectureReview:
		...


def extract_file_changes(implementation: str) -> list[tuple[str, str]]:
	"""Return (path, content) pairs for each <file path="..."> block, in order."""
	return [(m.group(1), m.group(2)) for m in FILE_BLOCK_RE.finditer(implementation)]


async def review_implementation(advisor: Advisor, implementation: str) -> Optional[AdvisoryUpdate]:
	"""Run the advisor over every declared file; None when nothing needs review."""
	issues = []
	signals: list[str] = []
	recommendations: list[str] = []
	options: list[str] = list(ADVISORY_OPTIONS)

	for file_path, content in extract_file_changes(implementation):
		review = await advisor.analyze(file_path, content)
		if not review.needs_review:
			continue
		issues.append(
			f"{file_path}:\n  Signals: {', '.join(review.signals)}\n  Recommendation: {review.recommendation}"
		)
		signals.extend(f"{file_path}: {s}" for s in review.signals)
		if review.recommendation and review.recommendation not in recommendations:
			recommendations.append(review.recommendation)
		options.extend(o for o in review.options if o not in options)

	if not issues:
		return None

	logger.info(f"Advisory review flagged {len(issues)} file(s)")
	return AdvisoryUpdate(
		message="Architectural concerns detected:\n\n" + "\n\n".join(issues),
		signals=tuple(signals),
		recommendation=" ".join(recommendations),
		options=tuple(options),
	)
