#!/usr/bin/env python3
"""
AuroraFS - The filesystem core of Aurora OS

This is the main entry point for AuroraFS.

Boots the filesystem from a JSON storage file, asks for a login and
opens a terminal on it. State is written back when the terminal
closes.

Usage:
    python -m aurorafs.main              interactive terminal
    python -m aurorafs.main --headless   scripted smoke run in memory

The storage file defaults to ``~/.aurorafs/storage.json``; set
``AURORAFS_STORAGE`` to use another one.

Author: YSNRFD
Version: 1.0.0
"""

import getpass
import os
import sys

from aurorafs.core.bootloader import Bootloader
from aurorafs.core.config_loader import get_config
from aurorafs.shell.shell import Shell
from aurorafs.storage import JsonFileStorage, MemoryStorage


DEFAULT_STORAGE_PATH = os.path.join(os.path.expanduser('~'), '.aurorafs', 'storage.json')

MAX_LOGIN_ATTEMPTS = 3


def _ask_password(username: str) -> str:
    return getpass.getpass(f"Password for {username}: ")


def _login(vfs) -> bool:
    """Prompt until a login succeeds or attempts run out."""
    default_user = get_config().users.default_user

    for _ in range(MAX_LOGIN_ATTEMPTS):
        try:
            username = input(f"login [{default_user}]: ").strip() or default_user
            password = getpass.getpass("Password: ")
        except EOFError:
            print()
            return False

        if vfs.login(username, password):
            print(f"Welcome to Aurora OS, {username}!")
            return True
        print("Login incorrect")

    return False


def main():
    """
    Main entry point for AuroraFS.

    Boot sequence:
    1. Load configuration
    2. Initialize logging
    3. Load and migrate stored data
    4. Integrity check
    5. Login and terminal
    6. Shutdown
    """
    storage_path = os.environ.get('AURORAFS_STORAGE', DEFAULT_STORAGE_PATH)

    print("AuroraFS Boot Sequence")
    print("=" * 50)

    bootloader = Bootloader(storage=JsonFileStorage(storage_path))
    result = bootloader.boot()

    if not result.success:
        print(f"\nBoot failed at stage {result.stage.name}")
        print(f"Error: {result.message}")
        if result.error:
            print(f"Details: {result.error}")
        sys.exit(1)

    print(f"\nBoot completed in {result.elapsed_time * 1000:.2f}ms")
    if result.migration and result.migration.added_paths:
        print(f"Migrated: {len(result.migration.added_paths)} new paths")
    print("=" * 50)

    vfs = bootloader.get_filesystem()
    if vfs.read_only:
        print("WARNING: system integrity compromised, filesystem is read-only")

    try:
        if _login(vfs):
            Shell(vfs, password_prompt=_ask_password).run()
    except KeyboardInterrupt:
        print("\n\nInterrupted")
    finally:
        bootloader.shutdown()


def run_headless():
    """
    Run AuroraFS in headless mode for testing.

    This boots an in-memory system and runs a short command script
    without starting the interactive terminal.
    """
    bootloader = Bootloader(storage=MemoryStorage())
    result = bootloader.boot()

    if not result.success:
        print(f"Boot failed: {result.message}")
        return 1

    vfs = bootloader.get_filesystem()
    vfs.login('user', '1234')
    shell = Shell(vfs)

    print("\n=== Running test commands ===\n")

    script = [
        'pwd',
        'ls -l',
        'echo "Hello, Aurora!" > ~/Documents/hello.txt',
        'cat ~/Documents/hello.txt',
        'cp ~/Documents/hello.txt /tmp',
        'rm ~/Documents/hello.txt',
        'ls -a ~/.Trash',
        'cat /etc/passwd',
    ]
    for line in script:
        print(shell.prompt() + line)
        for output_line in shell.execute(line).output:
            print(output_line)

    bootloader.shutdown()

    print("\n=== Test complete ===\n")
    return 0


if __name__ == '__main__':
    # Check for headless mode
    if len(sys.argv) > 1 and sys.argv[1] == '--headless':
        sys.exit(run_headless())

    # Run normal interactive mode
    main()
