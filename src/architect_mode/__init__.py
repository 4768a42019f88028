"""architect-mode - Architect/Editor refinement loop and approval oracle for coding agents."""

__version__ = "0.1.0"
