"""System prompts, user messages and context carry-over for the architect loop."""

from typing import Optional

from ..config import PersonaConfig
from ..persona import inject_from_config

APPROVAL_TOKEN = "APPROVED"
FEEDBACK_HEADER = "## Previous Iteration"
FEEDBACK_SEPARATOR = "\n\n---\n\n"

ARCHITECT_PLAN_PROMPT = """You are the Architect. Your role is to reason deeply about the task and produce a detailed implementation plan.

You will NOT write code. You will:
1. Analyze the task requirements thoroughly
2. Identify the files that need to be created or modified
3. Specify the exact changes needed in each file
4. Anticipate edge cases and failure modes
5. Provide clear, unambiguous instructions for the Editor

Your plan will be passed to a separate Editor model that will implement it.
The Editor cannot see your thinking process, only your final plan.
Be precise and explicit.

Format your plan as:
## Analysis
[Your understanding of the task]

## Files to Modify
[List each file with what needs to change]

## Implementation Steps
[Numbered steps the Editor should follow]

## Edge Cases
[What could go wrong and how to handle it]

## Acceptance Criteria
[How to verify the implementation is correct]"""

EDITOR_IMPLEMENT_PROMPT = """You are the Editor. Your role is to implement the Architect's plan precisely.

You will:
1. Follow the plan exactly as specified
2. Write clean, working code
3. Make only the changes specified in the plan
4. Include all necessary imports and dependencies
5. Handle the edge cases mentioned in the plan

If the plan is ambiguous on a specific point, make your best judgment and note it clearly.

Output your implementation as a series of file changes:

<file path="path/to/file.py">
[complete file contents]
</file>

<file path="path/to/other.py">
[complete file contents]
</file>

Include the complete file contents, not diffs."""

ARCHITECT_EVALUATE_PROMPT = """You are the Architect reviewing the Editor's implementation.

Evaluate thoroughly:
1. Does the implementation match the plan?
2. Does it satisfy the original task requirements?
3. Are there bugs, edge cases, or issues?
4. Is the code clean, maintainable, and follows best practices?
5. Are naming conventions consistent?
6. Are all acceptance criteria met?
{architecture_context}
If the implementation is acceptable, respond starting with: "APPROVED: " followed by a brief summary.

If changes are needed, respond starting with: "REVISION NEEDED: " followed by:
- Specific issues found
- Exact corrections required
- Any clarifications to the plan"""


def plan_system_prompt(persona: Optional[PersonaConfig]) -> str:
	return inject_from_config(ARCHITECT_PLAN_PROMPT, persona, "architect")


def implement_system_prompt(persona: Optional[PersonaConfig]) -> str:
	return inject_from_config(EDITOR_IMPLEMENT_PROMPT, persona, "editor")


def evaluate_system_prompt(persona: Optional[PersonaConfig], types_context: str = "") -> str:
	architecture_context = ""
	if types_context:
		architecture_context = (
			f"\n{types_context}\n\n"
			"Verify the implementation follows these type definitions and naming conventions.\n"
		)
	prompt = ARCHITECT_EVALUATE_PROMPT.format(architecture_context=architecture_context)
	return inject_from_config(prompt, persona, "architect")


def plan_messages(task: str, context: str) -> list[dict]:
	return [{
		"role": "user",
		"content": f"Context:\n{context}\n\nTask:\n{task}\n\nProvide your implementation plan.",
	}]


def implement_messages(plan: str, context: str) -> list[dict]:
	return [{
		"role": "user",
		"content": f"Context:\n{context}\n\n---\n\nArchitect's Plan:\n{plan}\n\nImplement this plan now.",
	}]


def evaluate_messages(task: str, plan: str, implementation: str, context: str) -> list[dict]:
	return [{
		"role": "user",
		"content": (
			f"Original Task:\n{task}\n\n---\n\n"
			f"Plan:\n{plan}\n\n---\n\n"
			f"Implementation:\n{implementation}\n\n---\n\n"
			f"Context:\n{context}\n\n"
			"Evaluate the implementation."
		),
	}]


def is_approved(evaluation: str) -> bool:
	"""True when the reviewer's answer starts with the approval token."""
	return evaluation.strip().upper().startswith(APPROVAL_TOKEN)


def feedback_section(implementation: str, evaluation: str) -> str:
	"""Render one carried-over attempt with the reviewer's feedback."""
	return (
		f"{FEEDBACK_SEPARATOR}"
		f"{FEEDBACK_HEADER}\n\n"
		f"### Implementation Attempt\n{implementation}\n\n"
		f"### Architect Feedback\n{evaluation}"
		f"{FEEDBACK_SEPARATOR}"
		"Address the feedback above in the next iteration."
	)


def append_feedback(context: str, implementation: str, evaluation: str) -> str:
	"""Append the last attempt and the reviewer's feedback to the working context."""
	return context + feedback_section(implementation, evaluation)


def bound_context(base: str, sections: list[str], char_budget: Optional[int]) -> str:
	"""
	Join the base context with the carried-over feedback sections.

	When the result would exceed the budget the oldest sections are dropped
	first. The base context and the newest section are always kept, so the
	result may still exceed the budget.
	"""
	kept = list(sections)
	if char_budget is not None:
		while len(kept) > 1 and len(base) + sum(len(s) for s in kept) > char_budget:
			kept.pop(0)
	return base + "".join(kept)
