"""Tests for architect-mode."""
