"""
Aurora Terminal Module

A terminal session over the virtual filesystem. Each terminal window
gets its own Shell: its own working directory and its own effective
user (set by ``su`` / ``sudo -s``), independent of the global login.

Author: YSNRFD
Version: 1.0.0
"""

from typing import Callable, Optional

from .parser import CommandParser, ParsedCommand
from .builtins import BuiltinCommands, CommandResult, fail
from aurorafs.filesystem.path_resolver import PathResolver
from aurorafs.filesystem.vfs import VirtualFileSystem
from aurorafs.logger import get_logger
from aurorafs.security.permissions import ROOT_USERNAME


PasswordPrompt = Callable[[str], Optional[str]]


class Shell:
    """
    Aurora terminal.

    Provides:
    - Command parsing with POSIX quoting
    - Built-in commands
    - Output redirection into files
    - su / sudo sessions per terminal

    Example:
        >>> shell = Shell(vfs)
        >>> shell.execute('echo hello > ~/hello.txt').error
        False
        >>> shell.execute('cat ~/hello.txt').output
        ['hello']
    """

    def __init__(
        self,
        vfs: VirtualFileSystem,
        effective_user: Optional[str] = None,
        cwd: Optional[str] = None,
        password_prompt: Optional[PasswordPrompt] = None
    ):
        self._vfs = vfs
        self._logger = get_logger('shell')
        self._parser = CommandParser()
        self._builtins = BuiltinCommands(self)
        self._effective_user = effective_user
        self._password_prompt = password_prompt
        self._running = False
        self._exiting = False
        self._cwd = cwd or vfs.home_path(self.user)

    @property
    def vfs(self) -> VirtualFileSystem:
        return self._vfs

    @property
    def parser(self) -> CommandParser:
        return self._parser

    @property
    def effective_user(self) -> Optional[str]:
        """The su / sudo identity, or None to act as the logged-in user."""
        return self._effective_user

    @effective_user.setter
    def effective_user(self, value: Optional[str]):
        self._effective_user = value

    @property
    def user(self) -> str:
        """The acting user of this terminal."""
        return self._effective_user or self._vfs.current_user or 'nobody'

    @property
    def cwd(self) -> str:
        return self._cwd

    @cwd.setter
    def cwd(self, value: str):
        self._cwd = value

    @property
    def exiting(self) -> bool:
        return self._exiting

    def request_exit(self) -> None:
        """Request shell exit."""
        self._exiting = True

    def ask_password(self, username: str) -> Optional[str]:
        if self._password_prompt is None:
            return None
        return self._password_prompt(username)

    def prompt(self) -> str:
        """Generate the shell prompt."""
        home = self._vfs.home_path(self.user)
        if home != '/' and PathResolver.is_within(self._cwd, home):
            cwd_display = '~' + self._cwd[len(home):]
        else:
            cwd_display = self._cwd

        prompt_char = '#' if self.user == ROOT_USERNAME else '$'
        return f"{self.user}@aurora:{cwd_display}{prompt_char} "

    def execute(self, line: str) -> CommandResult:
        """
        Execute a command line.

        Args:
            line: Command line string

        Returns:
            CommandResult with the lines to display
        """
        try:
            cmd = self._parser.parse(line)
        except ValueError as e:
            return fail(f"aurora: {e}")

        if cmd is None:
            return CommandResult()

        self._logger.debug("Executing command", user=self.user, context={'command': cmd.command})
        result = self._builtins.execute(cmd.command, cmd.args)

        if cmd.redirection is not None and not result.error:
            return self._redirect(cmd, result)
        return result

    def _redirect(self, cmd: ParsedCommand, result: CommandResult) -> CommandResult:
        """Write a command's output into the redirection target."""
        text = ''.join(line + '\n' for line in result.output)
        target = cmd.redirection.path
        scope = {'as_user': self.user, 'cwd': self._cwd}

        if self._vfs.exists(target, **scope):
            if cmd.redirection.append:
                existing = self._vfs.read_file(target, **scope)
                if existing is None:
                    return fail(f"aurora: {target}: {self._builtins.reason()}")
                text = existing + text
            written = self._vfs.write_file(target, text, **scope)
        else:
            directory, name = PathResolver.split(self._vfs.resolve_path(target, **scope))
            written = self._vfs.create_file(directory, name, text, **scope)

        if not written:
            return fail(f"aurora: {target}: {self._builtins.reason()}")
        return CommandResult()

    def run(self) -> None:
        """
        Run the interactive shell.

        This is the main REPL loop.
        """
        self._running = True
        self._exiting = False

        print("\nAurora OS Terminal")
        print("Type 'help' for a list of commands.\n")

        while self._running and not self._exiting:
            try:
                line = input(self.prompt())
            except EOFError:
                print()
                break
            except KeyboardInterrupt:
                print("^C")
                continue

            result = self.execute(line)
            for output_line in result.output:
                print(output_line)

        self._running = False
