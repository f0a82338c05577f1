"""
Aurora Terminal

Command layer over the virtual filesystem.
"""

from .parser import CommandParser, ParsedCommand, Redirection
from .builtins import BuiltinCommands, CommandResult
from .shell import Shell

__all__ = [
    'CommandParser',
    'ParsedCommand',
    'Redirection',
    'BuiltinCommands',
    'CommandResult',
    'Shell',
]
