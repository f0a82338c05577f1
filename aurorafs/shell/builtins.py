"""
Shell Built-in Commands

Implements the terminal commands on top of the virtual filesystem.
Each command returns a CommandResult instead of printing, so the
same commands serve the interactive shell and embedded terminals.

Author: YSNRFD
Version: 1.0.0
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, List

from aurorafs.exceptions import (
    IdentityException,
    InvalidModeError,
    InvalidNameError,
    MoveCycleError,
    NodeExistsError,
    NodeNotFoundError,
    NotADirectoryError,
    NotAFileError,
    PermissionDeniedError,
    ReadOnlyFileSystemError,
)
from aurorafs.filesystem.path_resolver import PathResolver
from aurorafs.security.permissions import ROOT_USERNAME, Operation


@dataclass
class CommandResult:
    """Output lines of one command and whether it failed."""
    output: List[str] = field(default_factory=list)
    error: bool = False


def ok(*lines: str) -> CommandResult:
    return CommandResult(output=list(lines))


def fail(*lines: str) -> CommandResult:
    return CommandResult(output=list(lines), error=True)


# Terminal wording for the failures the filesystem reports
_REASONS = (
    (NodeNotFoundError, 'No such file or directory'),
    (ReadOnlyFileSystemError, 'Read-only file system'),
    (PermissionDeniedError, 'Permission denied'),
    (NodeExistsError, 'File exists'),
    (NotADirectoryError, 'Not a directory'),
    (NotAFileError, 'Is a directory'),
    (MoveCycleError, 'Cannot move a directory into itself'),
    (InvalidModeError, 'Invalid mode'),
    (InvalidNameError, 'Invalid name'),
)

HELP_TEXT = """\
Aurora OS Terminal - Built-in Commands

Files:
  pwd                        Print working directory
  cd [path]                  Change directory (home when omitted)
  ls [-a] [-l] [path]        List directory contents
  cat <file>...              Display file contents
  echo [text]... [> file]    Print text, optionally into a file
  touch <file>...            Create empty files
  mkdir <dir>...             Create directories
  rm <path>...               Move to trash (delete inside the trash)
  mv <source>... <dest>      Move or rename
  cp [-r] <source> <dest>    Copy (-r for directories)
  chmod <mode> <path>        Change permissions (755 or drwxr-xr-x)
  chown <owner[:group]> <path>  Change owner (root only)
  emptytrash                 Empty your trash

Users:
  whoami                     Display the acting user
  su [user] [password]       Act as another user (root by default)
  sudo -s [password]         Act as root
  exit                       Leave su/sudo, or close the terminal
  logout                     End the session
  useradd <name> [full name] [password]
  userdel <name>
  groupadd <name> [member]...
  groupdel <name>
"""


class BuiltinCommands:
    """
    Built-in terminal commands.

    Every filesystem call runs as the shell's acting user from the
    shell's working directory.
    """

    def __init__(self, shell):
        """
        Initialize built-in commands.

        Args:
            shell: The shell instance
        """
        self._shell = shell
        self._commands: dict[str, Callable[[List[str]], CommandResult]] = {
            'help': self.cmd_help,
            'pwd': self.cmd_pwd,
            'cd': self.cmd_cd,
            'ls': self.cmd_ls,
            'cat': self.cmd_cat,
            'echo': self.cmd_echo,
            'touch': self.cmd_touch,
            'mkdir': self.cmd_mkdir,
            'rm': self.cmd_rm,
            'mv': self.cmd_mv,
            'cp': self.cmd_cp,
            'chmod': self.cmd_chmod,
            'chown': self.cmd_chown,
            'emptytrash': self.cmd_emptytrash,
            'whoami': self.cmd_whoami,
            'su': self.cmd_su,
            'sudo': self.cmd_sudo,
            'exit': self.cmd_exit,
            'logout': self.cmd_logout,
            'useradd': self.cmd_useradd,
            'userdel': self.cmd_userdel,
            'groupadd': self.cmd_groupadd,
            'groupdel': self.cmd_groupdel,
        }

    def get_commands(self) -> dict[str, Callable[[List[str]], CommandResult]]:
        """Get all built-in commands."""
        return self._commands

    def is_builtin(self, name: str) -> bool:
        """Check if a command is built-in."""
        return name in self._commands

    def execute(self, name: str, args: List[str]) -> CommandResult:
        """
        Execute a built-in command.

        Args:
            name: Command name
            args: Command arguments

        Returns:
            CommandResult
        """
        cmd = self._commands.get(name)
        if cmd is None:
            return fail(f"{name}: command not found")
        return cmd(args)

    # Helpers

    @property
    def _vfs(self):
        return self._shell.vfs

    def _scope(self) -> dict:
        return {'as_user': self._shell.user, 'cwd': self._shell.cwd}

    def _resolve(self, path: str) -> str:
        return self._vfs.resolve_path(path, **self._scope())

    def reason(self) -> str:
        """Terminal wording for the filesystem's last failure."""
        error = self._vfs.last_error
        for error_type, reason in _REASONS:
            if isinstance(error, error_type):
                return reason
        if isinstance(error, IdentityException):
            return error.message
        return 'Operation failed'

    def _require_root(self, name: str) -> Optional[CommandResult]:
        if self._shell.user != ROOT_USERNAME:
            return fail(f"{name}: Permission denied (are you root?)")
        return None

    # Files

    def cmd_help(self, args: List[str]) -> CommandResult:
        """Display help information."""
        return ok(*HELP_TEXT.rstrip('\n').split('\n'))

    def cmd_pwd(self, args: List[str]) -> CommandResult:
        """Print working directory."""
        return ok(self._shell.cwd)

    def cmd_cd(self, args: List[str]) -> CommandResult:
        """Change directory."""
        path = args[0] if args else '~'
        resolved = self._resolve(path)
        node = self._vfs.get_node_at_path(resolved, **self._scope())

        if node is None:
            return fail(f"cd: {path}: No such file or directory")
        if not node.is_directory:
            return fail(f"cd: {path}: Not a directory")
        if not self._vfs.can_access(resolved, Operation.EXECUTE, **self._scope()):
            return fail(f"cd: {path}: Permission denied")

        self._shell.cwd = resolved
        return ok()

    def cmd_ls(self, args: List[str]) -> CommandResult:
        """List directory contents."""
        flags = {a for a in args if a.startswith('-') and len(a) > 1}
        paths = [a for a in args if a not in flags]
        show_all = any('a' in f for f in flags)
        long_format = any('l' in f for f in flags)
        path = paths[0] if paths else self._shell.cwd

        entries = self._vfs.list_directory(path, **self._scope())
        if entries is None:
            if isinstance(self._vfs.last_error, NotADirectoryError):
                node = self._vfs.get_node_at_path(path, **self._scope())
                if node is not None:
                    entries = [node]
            if entries is None:
                return fail(f"ls: cannot access '{path}': {self.reason()}")

        if not show_all:
            entries = [e for e in entries if not e.name.startswith('.')]

        if long_format:
            lines = []
            for entry in entries:
                size = len(entry.content or '') if entry.is_file else 0
                lines.append(
                    f"{entry.permissions} {entry.owner or '-':<8} {entry.group or '-':<8} "
                    f"{size:>6} {entry.name}"
                )
            return ok(*lines)

        names = [e.name + '/' if e.is_directory else e.name for e in entries]
        return ok('  '.join(names)) if names else ok()

    def cmd_cat(self, args: List[str]) -> CommandResult:
        """Display file contents."""
        if not args:
            return fail("cat: missing operand")

        output = []
        error = False
        for path in args:
            content = self._vfs.read_file(path, **self._scope())
            if content is None:
                output.append(f"cat: {path}: {self.reason()}")
                error = True
                continue
            output.extend(content.rstrip('\n').split('\n') if content else [])
        return CommandResult(output=output, error=error)

    def cmd_echo(self, args: List[str]) -> CommandResult:
        """Print arguments."""
        return ok(' '.join(args))

    def cmd_touch(self, args: List[str]) -> CommandResult:
        """Create empty files; existing files are left alone."""
        if not args:
            return fail("touch: missing file operand")

        output = []
        for path in args:
            if self._vfs.exists(path, **self._scope()):
                continue
            directory, name = PathResolver.split(self._resolve(path))
            if not self._vfs.create_file(directory, name, **self._scope()):
                output.append(f"touch: cannot touch '{path}': {self.reason()}")
        return CommandResult(output=output, error=bool(output))

    def cmd_mkdir(self, args: List[str]) -> CommandResult:
        """Create directories."""
        if not args:
            return fail("mkdir: missing operand")

        output = []
        for path in args:
            directory, name = PathResolver.split(self._resolve(path))
            if not self._vfs.create_directory(directory, name, **self._scope()):
                output.append(f"mkdir: cannot create directory '{path}': {self.reason()}")
        return CommandResult(output=output, error=bool(output))

    def cmd_rm(self, args: List[str]) -> CommandResult:
        """Move files to the trash."""
        paths = [a for a in args if not a.startswith('-')]
        if not paths:
            return fail("rm: missing operand")

        output = []
        for path in paths:
            if not self._vfs.move_to_trash(path, **self._scope()):
                output.append(f"rm: cannot remove '{path}': {self.reason()}")
        return CommandResult(output=output, error=bool(output))

    def cmd_mv(self, args: List[str]) -> CommandResult:
        """Move or rename; several sources need a directory target."""
        if len(args) < 2:
            return fail("mv: missing file operand")

        *sources, target = args
        into_directory = self._vfs.is_directory(target, **self._scope())
        if len(sources) > 1 and not into_directory:
            return fail(f"mv: target '{target}' is not a directory")

        output = []
        for source in sources:
            dest = target
            if into_directory:
                dest = PathResolver.join(self._resolve(target), PathResolver.basename(self._resolve(source)))
            if not self._vfs.move_node(source, dest, **self._scope()):
                output.append(f"mv: cannot move '{source}' to '{target}': {self.reason()}")
        return CommandResult(output=output, error=bool(output))

    def cmd_cp(self, args: List[str]) -> CommandResult:
        """Copy a file, or a directory with -r."""
        recursive = any(a in ('-r', '-R', '--recursive') for a in args)
        paths = [a for a in args if not a.startswith('-')]
        if len(paths) < 2:
            return fail("cp: missing file operand")

        source, target = paths[0], paths[-1]
        if not recursive and self._vfs.is_directory(source, **self._scope()):
            return fail(f"cp: -r not specified; omitting directory '{source}'")

        if not self._vfs.copy_node(source, target, recursive, **self._scope()):
            return fail(f"cp: cannot copy '{source}' to '{target}': {self.reason()}")
        return ok()

    def cmd_chmod(self, args: List[str]) -> CommandResult:
        """Change permissions."""
        if len(args) < 2:
            return fail("chmod: missing operand")

        mode, path = args[0], args[1]
        if not self._vfs.chmod(path, mode, **self._scope()):
            return fail(f"chmod: changing permissions of '{path}': {self.reason()}")
        return ok()

    def cmd_chown(self, args: List[str]) -> CommandResult:
        """Change owner and optionally group."""
        if len(args) < 2:
            return fail("chown: missing operand")

        owner, _, group = args[0].partition(':')
        path = args[1]
        if not owner:
            return fail(f"chown: invalid user: '{args[0]}'")

        if not self._vfs.chown(path, owner, group or None, **self._scope()):
            return fail(f"chown: changing ownership of '{path}': {self.reason()}")
        return ok()

    def cmd_emptytrash(self, args: List[str]) -> CommandResult:
        """Empty the acting user's trash."""
        if not self._vfs.empty_trash(as_user=self._shell.user):
            return fail(f"emptytrash: {self.reason()}")
        return ok("Trash emptied")

    # Users

    def cmd_whoami(self, args: List[str]) -> CommandResult:
        """Display the acting user."""
        return ok(self._shell.user)

    def cmd_su(self, args: List[str]) -> CommandResult:
        """Switch the acting user of this terminal."""
        if self._vfs.read_only:
            return fail("su: Authentication disabled (system integrity compromised)")

        username = args[0] if args else ROOT_USERNAME
        if username == self._shell.user:
            return ok(f"Already logged in as {username}")

        password = args[1] if len(args) > 1 else self._shell.ask_password(username)
        if not self._vfs.authenticate(username, password):
            return fail("su: Authentication failure")

        self._shell.effective_user = username
        return ok(f"Logged in as {username}")

    def cmd_sudo(self, args: List[str]) -> CommandResult:
        """Only ``sudo -s`` (a root shell) is available."""
        if not args or args[0] != '-s':
            return fail("sudo: Only -s flag is supported in this terminal")
        return self.cmd_su([ROOT_USERNAME, *args[1:2]])

    def cmd_exit(self, args: List[str]) -> CommandResult:
        """Leave su/sudo, or close the terminal."""
        if self._shell.effective_user is not None:
            self._shell.effective_user = None
            return ok(f"Logged in as {self._shell.user}")
        self._shell.request_exit()
        return ok()

    def cmd_logout(self, args: List[str]) -> CommandResult:
        """End the session."""
        self._shell.effective_user = None
        self._vfs.logout()
        self._shell.request_exit()
        return ok("Logged out")

    def cmd_useradd(self, args: List[str]) -> CommandResult:
        """Create user."""
        if not args:
            return fail("useradd: missing username")
        denied = self._require_root('useradd')
        if denied:
            return denied

        username = args[0]
        full_name = args[1] if len(args) > 1 else ''
        password = args[2] if len(args) > 2 else None
        if not self._vfs.add_user(username, full_name, password):
            return fail(f"useradd: {self.reason()}")
        return ok(f"useradd: user '{username}' created")

    def cmd_userdel(self, args: List[str]) -> CommandResult:
        """Delete user."""
        if not args:
            return fail("userdel: missing username")
        denied = self._require_root('userdel')
        if denied:
            return denied

        if not self._vfs.delete_user(args[0]):
            return fail(f"userdel: {self.reason()}")
        return ok(f"userdel: user '{args[0]}' deleted")

    def cmd_groupadd(self, args: List[str]) -> CommandResult:
        """Create group."""
        if not args:
            return fail("groupadd: missing group name")
        denied = self._require_root('groupadd')
        if denied:
            return denied

        if not self._vfs.add_group(args[0], tuple(args[1:])):
            return fail(f"groupadd: {self.reason()}")
        return ok(f"groupadd: group '{args[0]}' created")

    def cmd_groupdel(self, args: List[str]) -> CommandResult:
        """Delete group."""
        if not args:
            return fail("groupdel: missing group name")
        denied = self._require_root('groupdel')
        if denied:
            return denied

        if not self._vfs.delete_group(args[0]):
            return fail(f"groupdel: {self.reason()}")
        return ok(f"groupdel: group '{args[0]}' deleted")
