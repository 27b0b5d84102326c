"""Shared utilities: retry executor, best-effort side actions, subprocess and logging helpers."""
