"""Error types raised across the core/adapter boundary."""

from __future__ import annotations


class GatewayError(RuntimeError):
    """A single gateway invocation failed (exit status, timeout, bad output)."""


class StartupError(RuntimeError):
    """The engine cannot start its receive loop."""
