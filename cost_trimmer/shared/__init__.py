"""Shared cross-cutting utilities (telemetry, clock)."""
