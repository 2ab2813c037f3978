"""
ChessAcademy package bootstrap.

Subpackages:
- interface: HTTP blueprints, CLI commands and telemetry.
- domain: Game sessions and clocks, player profiles, lessons.
- infrastructure: Configuration and relational persistence.
"""

__all__ = ["interface", "domain", "infrastructure"]
