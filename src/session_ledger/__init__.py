"""session-ledger: durable record of an agent's work sessions.

Persists conversation turns and tool invocations in SQLite, migrates the
on-disk schema as it evolves, classifies tool calls, and aggregates tool
statistics.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("session-ledger")
except PackageNotFoundError:
    # Running from a source checkout without installation
    __version__ = "0.0.0"
