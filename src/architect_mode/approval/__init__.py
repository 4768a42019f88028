"""Approval module - fast-path rules, decision cache and adjudication."""

from .adjudicator import Adjudicator, ClaudeCLIAdjudicator, parse_adjudication
from .oracle import ApprovalOracle
from .patterns import RuleSet, generalize

__all__ = [
	"Adjudicator",
	"ApprovalOracle",
	"ClaudeCLIAdjudicator",
	"RuleSet",
	"generalize",
	"parse_adjudication",
]
