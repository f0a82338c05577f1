#!/usr/bin/env python3
"""
Virtual File System Tests

Run with: python -m pytest aurorafs/tests/test_vfs.py -v

Author: YSNRFD
Version: 1.0.0
"""

import json
import sys
import unittest

from aurorafs.core.config_loader import Config
from aurorafs.exceptions import (
    AuthenticationError,
    InvalidModeError,
    MoveCycleError,
    NodeExistsError,
    NodeNotFoundError,
    NotADirectoryError,
    NotAFileError,
    PermissionDeniedError,
    ProtectedIdentityError,
    ReadOnlyFileSystemError,
)
from aurorafs.filesystem.defaults import default_tree
from aurorafs.filesystem.node import FileNode
from aurorafs.filesystem.tree import insert_child, remove_child
from aurorafs.filesystem.vfs import VirtualFileSystem
from aurorafs.notifications import NotificationType, RecordingNotifier
from aurorafs.security.permissions import Operation
from aurorafs.storage import MemoryStorage, SnapshotStore


def make_vfs(**kwargs) -> VirtualFileSystem:
    kwargs.setdefault('notifier', RecordingNotifier())
    vfs = VirtualFileSystem(**kwargs)
    vfs.initialize()
    return vfs


class VFSTestCase(unittest.TestCase):

    def setUp(self):
        self.notifier = RecordingNotifier()
        self.vfs = make_vfs(notifier=self.notifier)
        self.assertTrue(self.vfs.login('user', '1234'))
        self.notifier.clear()


class TestReadAndWrite(VFSTestCase):
    """Test basic file access."""

    def test_create_and_read(self):
        self.assertTrue(self.vfs.create_file('~/Documents', 'notes.txt', 'hello'))
        self.assertEqual(self.vfs.read_file('/home/user/Documents/notes.txt'), 'hello')
        node = self.vfs.get_node_at_path('~/Documents/notes.txt')
        self.assertEqual(node.owner, 'user')
        self.assertEqual(node.permissions, '-rw-r--r--')
        self.assertIsNone(self.vfs.last_error)

    def test_well_known_folder_paths(self):
        self.assertTrue(self.vfs.create_file('/Desktop', 'todo.txt'))
        self.assertTrue(self.vfs.exists('/home/user/Desktop/todo.txt'))

    def test_tilde_follows_acting_user(self):
        self.assertEqual(self.vfs.resolve_path('~/notes.txt'), '/home/user/notes.txt')
        self.assertEqual(self.vfs.resolve_path('~/notes.txt', as_user='guest'), '/home/guest/notes.txt')
        self.assertEqual(self.vfs.resolve_path('~', as_user='root'), '/root')

        self.assertTrue(self.vfs.create_file('~', 'mine.txt', as_user='guest'))
        self.assertEqual(self.vfs.get_node_at_path('/home/guest/mine.txt', as_user='guest').owner, 'guest')
        self.assertFalse(self.vfs.exists('/home/user/mine.txt'))

    def test_relative_paths_use_cwd(self):
        self.assertTrue(self.vfs.create_directory('.', 'project', cwd='/tmp'))
        self.assertTrue(self.vfs.is_directory('/tmp/project'))

    def test_write_file(self):
        self.assertTrue(self.vfs.write_file('~/Documents/welcome.txt', 'changed'))
        self.assertEqual(self.vfs.read_file('~/Documents/welcome.txt'), 'changed')
        self.assertEqual(self.vfs.get_node_at_path('~/Documents/welcome.txt').size, 7)

    def test_read_directory_fails(self):
        self.assertIsNone(self.vfs.read_file('~/Documents'))
        self.assertIsInstance(self.vfs.last_error, NotAFileError)

    def test_duplicate_name(self):
        self.assertFalse(self.vfs.create_file('~/Documents', 'welcome.txt'))
        self.assertIsInstance(self.vfs.last_error, NodeExistsError)

    def test_invalid_names(self):
        for name in ('', '.', '..', 'a/b'):
            self.assertFalse(self.vfs.create_file('/tmp', name))

    def test_list_directory(self):
        names = [n.name for n in self.vfs.list_directory('~')]
        self.assertEqual(
            names,
            ['Desktop', 'Documents', 'Downloads', 'Pictures', 'Music', 'Videos', '.Trash']
        )

    def test_missing_path(self):
        self.assertIsNone(self.vfs.get_node_at_path('/nope/deeper'))
        self.assertIsInstance(self.vfs.last_error, NodeNotFoundError)
        self.assertFalse(self.vfs.exists('/nope'))

    def test_delete_root_refused(self):
        self.assertFalse(self.vfs.delete_node('/', as_user='root'))
        self.assertTrue(self.vfs.exists('/etc'))


class TestPermissions(VFSTestCase):
    """Test permission enforcement."""

    def test_denied_write_leaves_tree_unchanged(self):
        root_before = self.vfs.root
        docs_before = self.vfs.get_node_at_path('/home/user/Documents')

        self.assertFalse(self.vfs.create_file('/home/user/Documents', 'x.txt', as_user='guest'))

        self.assertIsInstance(self.vfs.last_error, PermissionDeniedError)
        self.assertIs(self.vfs.root, root_before)
        self.assertEqual(
            [c.name for c in self.vfs.get_node_at_path('/home/user/Documents').children],
            [c.name for c in docs_before.children]
        )
        self.assertEqual(self.notifier.last.type, NotificationType.ERROR)
        self.assertEqual(self.notifier.last.source, 'Permission Denied')

    def test_unreadable_directory(self):
        self.assertIsNone(self.vfs.list_directory('/root', as_user='guest'))
        self.assertIsInstance(self.vfs.last_error, PermissionDeniedError)

    def test_untraversable_directory_hides_children(self):
        self.assertIsNone(self.vfs.get_node_at_path('/root/.Trash', as_user='guest'))
        self.assertIsInstance(self.vfs.last_error, NodeNotFoundError)
        self.assertIsNotNone(self.vfs.get_node_at_path('/root/.Trash', as_user='root'))

    def test_root_bypass(self):
        self.assertTrue(self.vfs.create_file('/home/user/Documents', 'from-root.txt', as_user='root'))
        self.assertEqual(self.vfs.get_node_at_path('~/Documents/from-root.txt').owner, 'root')

    def test_read_denied(self):
        self.assertTrue(self.vfs.chmod('~/Documents/welcome.txt', '600'))
        self.assertIsNone(self.vfs.read_file('/home/user/Documents/welcome.txt', as_user='guest'))
        self.assertIsInstance(self.vfs.last_error, PermissionDeniedError)

    def test_delete_needs_parent_write(self):
        self.assertFalse(self.vfs.delete_node('/etc/motd'))
        self.assertTrue(self.vfs.exists('/etc/motd'))
        self.assertTrue(self.vfs.delete_node('/etc/motd', as_user='root'))
        self.assertFalse(self.vfs.exists('/etc/motd'))

    def test_can_access(self):
        self.assertTrue(self.vfs.can_access('/root', Operation.EXECUTE, as_user='root'))
        self.assertFalse(self.vfs.can_access('/root', Operation.EXECUTE))
        self.assertTrue(self.vfs.can_access('/tmp', Operation.EXECUTE))
        self.assertTrue(self.vfs.can_access('~/Documents/welcome.txt', Operation.WRITE))
        self.assertFalse(self.vfs.can_access('/home/user/Documents/welcome.txt', Operation.WRITE, as_user='guest'))
        self.assertFalse(self.vfs.can_access('/nowhere', Operation.READ))
        self.assertIsInstance(self.vfs.last_error, NodeNotFoundError)


class TestStickyDirectory(VFSTestCase):
    """Test /tmp semantics."""

    def setUp(self):
        super().setUp()
        self.assertTrue(self.vfs.add_user('alice'))
        self.assertTrue(self.vfs.add_user('bob'))
        self.assertTrue(self.vfs.create_file('/tmp', 'a.txt', 'alice was here', as_user='alice'))

    def test_other_user_cannot_delete(self):
        self.assertFalse(self.vfs.delete_node('/tmp/a.txt', as_user='bob'))
        self.assertIsInstance(self.vfs.last_error, PermissionDeniedError)
        self.assertTrue(self.vfs.exists('/tmp/a.txt'))

    def test_other_user_cannot_move_out(self):
        self.assertFalse(self.vfs.move_node('/tmp/a.txt', '/home/bob/a.txt', as_user='bob'))
        self.assertTrue(self.vfs.exists('/tmp/a.txt'))

    def test_owner_and_root_can_delete(self):
        self.assertTrue(self.vfs.create_file('/tmp', 'b.txt', as_user='alice'))
        self.assertTrue(self.vfs.delete_node('/tmp/a.txt', as_user='alice'))
        self.assertTrue(self.vfs.delete_node('/tmp/b.txt', as_user='root'))

    def test_everyone_can_create(self):
        self.assertTrue(self.vfs.create_file('/tmp', 'b.txt', as_user='bob'))


class TestMoveAndCopy(VFSTestCase):
    """Test move, rename and copy."""

    def test_rename_keeps_id(self):
        original = self.vfs.get_node_at_path('~/Documents/welcome.txt')
        self.assertTrue(self.vfs.move_node('~/Documents/welcome.txt', '~/Desktop/hello.txt'))
        moved = self.vfs.get_node_at_path('~/Desktop/hello.txt')
        self.assertEqual(moved.id, original.id)
        self.assertEqual(moved.content, original.content)
        self.assertFalse(self.vfs.exists('~/Documents/welcome.txt'))

    def test_move_into_descendant_fails(self):
        self.assertTrue(self.vfs.create_directory('~', 'a'))
        self.assertTrue(self.vfs.create_directory('~/a', 'b'))
        self.assertTrue(self.vfs.create_directory('~/a/b', 'c'))
        root_before = self.vfs.root

        for target in ('~/a/a', '~/a/b/a', '~/a/b/c/a'):
            with self.subTest(target=target):
                self.assertFalse(self.vfs.move_node('~/a', target))
                self.assertIsInstance(self.vfs.last_error, MoveCycleError)
        self.assertIs(self.vfs.root, root_before)

    def test_move_name_conflict(self):
        self.assertTrue(self.vfs.create_file('~/Desktop', 'welcome.txt'))
        self.assertFalse(self.vfs.move_node('~/Desktop/welcome.txt', '~/Documents/welcome.txt'))
        self.assertIsInstance(self.vfs.last_error, NodeExistsError)

    def test_move_by_id(self):
        node = self.vfs.get_node_at_path('~/Documents/welcome.txt')
        self.assertTrue(self.vfs.move_node_by_id(node.id, '~/Music'))
        self.assertEqual(self.vfs.get_node_at_path('~/Music/welcome.txt').id, node.id)
        self.assertFalse(self.vfs.move_node_by_id('missing-id', '~/Music'))
        self.assertIsInstance(self.vfs.last_error, NodeNotFoundError)

    def test_copy_file(self):
        self.assertTrue(self.vfs.copy_node('/etc/motd', '/tmp', as_user='guest'))
        original = self.vfs.get_node_at_path('/etc/motd')
        copy = self.vfs.get_node_at_path('/tmp/motd')
        self.assertNotEqual(copy.id, original.id)
        self.assertEqual(copy.content, original.content)
        self.assertEqual(copy.owner, 'guest')

    def test_copy_with_new_name(self):
        self.assertTrue(self.vfs.copy_node('~/Documents/welcome.txt', '~/Desktop/copy.txt'))
        self.assertEqual(self.vfs.read_file('~/Desktop/copy.txt'), 'Welcome to Aurora OS!\n')

    def test_copy_directory_needs_recursive(self):
        self.assertFalse(self.vfs.copy_node('~/Documents', '~/Desktop'))
        self.assertIsInstance(self.vfs.last_error, NotAFileError)
        self.assertTrue(self.vfs.copy_node('~/Documents', '~/Desktop', recursive=True))
        self.assertTrue(self.vfs.exists('~/Desktop/Documents/welcome.txt'))
        self.assertNotEqual(
            self.vfs.get_node_at_path('~/Desktop/Documents/welcome.txt').id,
            self.vfs.get_node_at_path('~/Documents/welcome.txt').id
        )

    def test_copy_into_itself_fails(self):
        self.assertFalse(self.vfs.copy_node('~/Documents', '~/Documents', recursive=True))
        self.assertIsInstance(self.vfs.last_error, MoveCycleError)


class TestTrash(VFSTestCase):
    """Test soft delete."""

    def test_move_to_trash(self):
        self.assertTrue(self.vfs.move_to_trash('~/Documents/welcome.txt'))
        self.assertFalse(self.vfs.exists('~/Documents/welcome.txt'))
        self.assertTrue(self.vfs.exists('~/.Trash/welcome.txt'))

    def test_name_collisions(self):
        for _ in range(3):
            self.assertTrue(self.vfs.create_file('~', 'a.txt'))
            self.assertTrue(self.vfs.move_to_trash('~/a.txt'))
        names = sorted(n.name for n in self.vfs.list_directory('~/.Trash'))
        self.assertEqual(names, ['a 1.txt', 'a 2.txt', 'a.txt'])

    def test_delete_from_trash_is_final(self):
        self.assertTrue(self.vfs.move_to_trash('~/Documents/welcome.txt'))
        self.assertTrue(self.vfs.move_to_trash('~/.Trash/welcome.txt'))
        self.assertEqual(self.vfs.list_directory('~/.Trash'), [])

    def test_trash_created_on_demand(self):
        self.assertTrue(self.vfs.delete_node('~/.Trash'))
        self.assertTrue(self.vfs.move_to_trash('~/Documents/welcome.txt'))
        self.assertTrue(self.vfs.exists('~/.Trash/welcome.txt'))

    def test_failed_trash_leaves_tree_untouched(self):
        self.assertTrue(self.vfs.delete_node('~/.Trash'))
        roots = []
        self.vfs.add_listener(roots.append)
        before = self.vfs.root

        self.assertFalse(self.vfs.move_to_trash('/etc/motd'))
        self.assertIsInstance(self.vfs.last_error, PermissionDeniedError)
        self.assertFalse(self.vfs.exists('~/.Trash'))
        self.assertIs(self.vfs.root, before)
        self.assertEqual(roots, [])

        self.assertTrue(self.vfs.move_to_trash('~/Documents/welcome.txt'))
        self.assertEqual(len(roots), 1)

    def test_empty_trash(self):
        self.assertTrue(self.vfs.move_to_trash('~/Documents'))
        self.assertTrue(self.vfs.empty_trash())
        self.assertEqual(self.vfs.list_directory('~/.Trash'), [])


class TestChmodChown(VFSTestCase):
    """Test mode and ownership changes."""

    def test_chmod_octal_keeps_sticky(self):
        self.assertTrue(self.vfs.chmod('/tmp', '755', as_user='root'))
        self.assertEqual(self.vfs.get_node_at_path('/tmp').permissions, 'drwxr-xr-t')

    def test_chmod_symbolic(self):
        self.assertTrue(self.vfs.chmod('~/Documents/welcome.txt', '-rwx------'))
        self.assertEqual(self.vfs.get_node_at_path('~/Documents/welcome.txt').permissions, '-rwx------')

    def test_chmod_type_mismatch(self):
        self.assertFalse(self.vfs.chmod('~/Documents', '-rwx------'))
        self.assertIsInstance(self.vfs.last_error, InvalidModeError)

    def test_chmod_bad_mode(self):
        self.assertFalse(self.vfs.chmod('~/Documents', '999'))
        self.assertIsInstance(self.vfs.last_error, InvalidModeError)

    def test_chmod_non_string_mode(self):
        self.assertFalse(self.vfs.chmod('~/Documents/welcome.txt', 755))
        self.assertIsInstance(self.vfs.last_error, InvalidModeError)
        self.assertEqual(
            self.vfs.get_node_at_path('~/Documents/welcome.txt').permissions, '-rw-r--r--'
        )

    def test_chmod_requires_owner(self):
        self.assertFalse(self.vfs.chmod('/etc/motd', '777'))
        self.assertIsInstance(self.vfs.last_error, PermissionDeniedError)
        self.assertEqual(self.vfs.get_node_at_path('/etc/motd').permissions, '-rw-r--r--')

    def test_chown_root_only(self):
        self.assertFalse(self.vfs.chown('~/Documents/welcome.txt', 'guest'))
        self.assertTrue(self.vfs.chown(
            '/home/user/Documents/welcome.txt', 'guest', 'users', as_user='root'
        ))
        node = self.vfs.get_node_at_path('/home/user/Documents/welcome.txt')
        self.assertEqual((node.owner, node.group), ('guest', 'users'))
        self.assertEqual(node.permissions, '-rw-r--r--')


class TestSessionsAndAccounts(VFSTestCase):
    """Test login and account management."""

    def test_bad_password(self):
        self.vfs.logout()
        self.assertFalse(self.vfs.login('user', 'wrong'))
        self.assertIsNone(self.vfs.current_user)
        self.assertIsInstance(self.vfs.last_error, AuthenticationError)
        self.assertEqual(self.notifier.last.source, 'Auth')

    def test_unknown_user(self):
        self.assertFalse(self.vfs.login('mallory', 'x'))
        self.assertEqual(self.vfs.current_user, 'user')

    def test_logout(self):
        self.vfs.logout()
        self.assertIsNone(self.vfs.current_user)
        self.assertEqual(self.vfs.acting_user().username, 'nobody')

    def test_add_user_creates_home(self):
        self.assertTrue(self.vfs.add_user('alice', 'Alice', 'wonder'))
        home = self.vfs.get_node_at_path('/home/alice')
        self.assertEqual(home.owner, 'alice')
        self.assertTrue(self.vfs.exists('/home/alice/Documents'))
        self.assertTrue(self.vfs.exists('/home/alice/.Trash'))
        self.assertIn('alice:wonder:1002:1002:Alice:/home/alice:/bin/bash', self.vfs.read_file('/etc/passwd'))
        self.assertTrue(self.vfs.login('alice', 'wonder'))

    def test_add_user_without_home_leaves_no_account(self):
        root = remove_child(default_tree(), [], 'home')
        root = insert_child(root, [], FileNode.file('home', owner='root'))
        vfs = make_vfs(root=root)

        self.assertFalse(vfs.add_user('zed'))
        self.assertIsInstance(vfs.last_error, NotADirectoryError)
        self.assertIsNone(vfs.identities.get_user('zed'))
        self.assertNotIn('zed:', vfs.read_file('/etc/passwd', as_user='root'))

        # The failed attempt does not use up the uid
        self.assertTrue(vfs.delete_node('/home', as_user='root'))
        self.assertTrue(vfs.add_user('amy'))
        self.assertTrue(vfs.is_directory('/home/amy', as_user='root'))
        self.assertEqual(vfs.identities.get_user('amy').uid, 1002)

    def test_passwordless_account_accepts_anything(self):
        self.assertTrue(self.vfs.add_user('kiosk'))
        self.assertTrue(self.vfs.login('kiosk', 'whatever'))
        self.assertTrue(self.vfs.login('kiosk'))

    def test_protected_user(self):
        self.assertFalse(self.vfs.delete_user('root'))
        self.assertIsInstance(self.vfs.last_error, ProtectedIdentityError)
        self.assertEqual(self.notifier.last.source, 'User Management')

    def test_delete_user_keeps_files(self):
        self.assertTrue(self.vfs.delete_user('guest'))
        self.assertNotIn('guest:', self.vfs.read_file('/etc/passwd'))
        self.assertEqual(self.vfs.get_node_at_path('/home/guest').owner, 'guest')

    def test_groups(self):
        self.assertTrue(self.vfs.add_group('devs', ('user',)))
        self.assertIn('devs:x:101:user', self.vfs.read_file('/etc/group'))
        self.assertTrue(self.vfs.delete_group('devs'))
        self.assertFalse(self.vfs.delete_group('users'))

    def test_editing_passwd_updates_accounts(self):
        passwd = self.vfs.read_file('/etc/passwd')
        new_text = passwd + "dave:secret:2000:2000:Dave:/home/dave:/bin/bash\n"
        self.assertTrue(self.vfs.write_file('/etc/passwd', new_text, as_user='root'))
        self.assertIsNotNone(self.vfs.identities.get_user('dave'))
        self.assertTrue(self.vfs.login('dave', 'secret'))

    def test_passwd_not_writable_by_users(self):
        self.assertFalse(self.vfs.write_file('/etc/passwd', ''))
        self.assertEqual(len(self.vfs.users), 3)

    def test_corrupt_passwd_falls_back_to_memory(self):
        self.assertTrue(self.vfs.write_file('/etc/passwd', 'garbage\n', as_user='root'))
        self.assertEqual(len(self.vfs.users), 3)
        self.vfs.logout()
        self.assertTrue(self.vfs.login('user', '1234'))

    def test_reset(self):
        self.assertTrue(self.vfs.add_user('alice'))
        self.assertTrue(self.vfs.create_file('/tmp', 'junk'))
        self.assertTrue(self.vfs.reset_file_system())
        self.assertIsNone(self.vfs.current_user)
        self.assertFalse(self.vfs.exists('/tmp/junk'))
        self.assertIsNone(self.vfs.identities.get_user('alice'))
        self.assertNotIn('alice', self.vfs.read_file('/etc/passwd'))


class TestListenersAndReadOnly(unittest.TestCase):
    """Test change listeners and the read-only gate."""

    def test_listener_gets_new_root(self):
        vfs = make_vfs()
        seen = []
        vfs.add_listener(seen.append)
        self.assertTrue(vfs.create_file('/tmp', 'a', as_user='root'))
        self.assertEqual(seen, [vfs.root])

        self.assertFalse(vfs.create_file('/tmp', 'a', as_user='root'))
        self.assertEqual(len(seen), 1)

        vfs.remove_listener(seen.append)
        self.assertTrue(vfs.create_file('/tmp', 'b', as_user='root'))
        self.assertEqual(len(seen), 1)

    def test_failing_listener_does_not_break_mutation(self):
        vfs = make_vfs()

        def broken(root):
            raise RuntimeError("listener bug")

        vfs.add_listener(broken)
        self.assertTrue(vfs.create_file('/tmp', 'a', as_user='root'))
        self.assertTrue(vfs.exists('/tmp/a'))

    def test_read_only_blocks_mutations(self):
        notifier = RecordingNotifier()
        vfs = make_vfs(notifier=notifier, read_only=True)
        root_before = vfs.root

        self.assertFalse(vfs.create_file('/tmp', 'a', as_user='root'))
        self.assertIsInstance(vfs.last_error, ReadOnlyFileSystemError)
        self.assertEqual(notifier.last.source, 'Read-only File System')
        self.assertFalse(vfs.add_user('alice'))
        self.assertFalse(vfs.chmod('/tmp', '777', as_user='root'))
        self.assertFalse(vfs.reset_file_system())
        self.assertIs(vfs.root, root_before)

        # Reads still work
        self.assertEqual(vfs.read_file('/etc/motd'), 'Welcome to Aurora OS\n')


class TestPersistence(unittest.TestCase):
    """Test debounced snapshot writes."""

    def setUp(self):
        self.backend = MemoryStorage()
        self.config = Config()
        self.config.filesystem.persist_delay = 60.0
        self.vfs = make_vfs(config=self.config, snapshots=SnapshotStore(self.backend))

    def tearDown(self):
        self.vfs.stop()

    def test_mutations_are_debounced(self):
        self.assertTrue(self.vfs.create_file('/tmp', 'a', as_user='root'))
        self.assertTrue(self.vfs.create_file('/tmp', 'b', as_user='root'))
        self.assertIsNone(self.backend.load('aurora-filesystem'))

        self.assertTrue(self.vfs.flush())
        tree = json.loads(self.backend.load('aurora-filesystem'))
        tmp = next(c for c in tree['children'] if c['name'] == 'tmp')
        self.assertEqual([c['name'] for c in tmp['children']], ['a', 'b'])
        self.assertEqual(json.loads(self.backend.load('aurora-version')), 2)
        self.assertFalse(self.vfs.flush())

    def test_identity_changes_are_saved(self):
        self.assertTrue(self.vfs.add_user('alice'))
        self.vfs.stop()
        users = json.loads(self.backend.load('aurora-users'))
        self.assertIn('alice', [u['username'] for u in users])

    def test_reset_clears_storage(self):
        self.assertTrue(self.vfs.create_file('/tmp', 'a', as_user='root'))
        self.vfs.flush()
        self.assertTrue(self.vfs.reset_file_system())
        self.vfs.flush()
        tree = json.loads(self.backend.load('aurora-filesystem'))
        tmp = next(c for c in tree['children'] if c['name'] == 'tmp')
        self.assertEqual(tmp['children'], [])


def run_tests():
    """Run all tests."""
    loader = unittest.TestLoader()
    suite = loader.loadTestsFromModule(sys.modules[__name__])

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(run_tests())
