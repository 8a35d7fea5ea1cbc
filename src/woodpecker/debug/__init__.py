"""Debug console - line-oriented introspection commands."""

from woodpecker.debug.commands import COMMANDS, command, handle_command

__all__ = ["COMMANDS", "command", "handle_command"]
