"""Shared utilities: logging, metrics, tracing and retry."""
