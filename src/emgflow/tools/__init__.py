"""Utility scripts and helpers (offline replay, debug instrumentation)."""
