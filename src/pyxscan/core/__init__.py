"""Deterministic and AI-assisted scanning core."""
