"""Orchestrator module - Architect/Editor refinement loop."""

from .architect import ArchitectOrchestrator

__all__ = [
	"ArchitectOrchestrator",
]
