"""
Command Parser Module

Parses terminal lines into a command, its arguments and an optional
output redirection (``>`` or ``>>``). Quoting follows POSIX shell
rules via ``shlex``.

Author: YSNRFD
Version: 1.0.0
"""

import shlex
from dataclasses import dataclass, field
from typing import Optional, List


@dataclass
class Redirection:
    """An output redirection."""
    path: str
    append: bool = False


@dataclass
class ParsedCommand:
    """A parsed command line."""
    command: str
    args: List[str] = field(default_factory=list)
    redirection: Optional[Redirection] = None


class CommandParser:
    """
    Parses terminal command lines.

    Example:
        >>> parser = CommandParser()
        >>> cmd = parser.parse('echo "hello world" > ~/notes.txt')
        >>> cmd.args, cmd.redirection.path
        (['hello world'], '~/notes.txt')
    """

    def __init__(self):
        self._history: List[str] = []

    @property
    def history(self) -> List[str]:
        return list(self._history)

    @staticmethod
    def tokenize(line: str) -> List[str]:
        """
        Split a line into words; ``>`` and ``>>`` become their own tokens.

        Raises:
            ValueError: On an unterminated quote
        """
        lexer = shlex.shlex(line, posix=True, punctuation_chars='>')
        lexer.whitespace_split = True
        return list(lexer)

    def parse(self, line: str) -> Optional[ParsedCommand]:
        """
        Parse a command line.

        Returns:
            ParsedCommand, or None for a blank line or a comment

        Raises:
            ValueError: On bad quoting or a redirection without a target
        """
        line = line.strip()

        if not line or line.startswith('#'):
            return None

        self._history.append(line)

        tokens = self.tokenize(line)
        if not tokens:
            return None

        redirection = None
        for operator in ('>>', '>'):
            if operator in tokens:
                index = tokens.index(operator)
                if index + 1 >= len(tokens):
                    raise ValueError(f"syntax error near unexpected token `{operator}'")
                redirection = Redirection(path=tokens[index + 1], append=operator == '>>')
                tokens = tokens[:index] + tokens[index + 2:]
                break

        if not tokens:
            raise ValueError("missing command before redirection")

        return ParsedCommand(command=tokens[0], args=tokens[1:], redirection=redirection)
