"""Connection descriptors and the session runner."""

from __future__ import annotations

from .descriptor import ConnectionDescriptor, build_descriptor
from .output import StatementResult, render_result
from .runner import SessionRunner

__all__ = [
    "ConnectionDescriptor",
    "SessionRunner",
    "StatementResult",
    "build_descriptor",
    "render_result",
]
