"""
CLI commands for promtestgen.
"""

from promtestgen.cli.generate import generate_command
from promtestgen.cli.inspect import inspect_command

__all__ = [
    "generate_command",
    "inspect_command",
]
