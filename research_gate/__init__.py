"""Research gate: session-scoped auto-research budget for planning workflows."""

__version__ = "0.1.0"
