#!/usr/bin/env python3
"""
Identity Tests

Covers the passwd/group codec, the identity store and the
synchronizer that keeps /etc in step with the store.

Run with: python -m pytest aurorafs/tests/test_identity.py -v

Author: YSNRFD
Version: 1.0.0
"""

import sys
import unittest

from aurorafs.exceptions import (
    IdentityExistsError,
    IdentityNotFoundError,
    IdentityParseError,
    InvalidIdentityError,
    ProtectedIdentityError,
)
from aurorafs.filesystem.defaults import default_tree
from aurorafs.filesystem.tree import node_at
from aurorafs.logger import Logger
from aurorafs.users.identity import (
    User,
    Group,
    default_users,
    default_groups,
    format_group,
    format_passwd,
    parse_group,
    parse_passwd,
)
from aurorafs.users.identity_store import IdentityStore
from aurorafs.users.sync import IdentitySynchronizer


class TestPasswdCodec(unittest.TestCase):
    """Test /etc/passwd parsing and formatting."""

    def test_format_default_users(self):
        text = format_passwd(default_users())
        lines = text.splitlines()
        self.assertEqual(lines[0], 'root:admin:0:0:System Administrator:/root:/bin/bash')
        self.assertEqual(len(lines), 3)
        self.assertTrue(text.endswith('\n'))

    def test_round_trip_keeps_order(self):
        users = parse_passwd(format_passwd(default_users()))
        self.assertEqual([u.username for u in users], ['root', 'user', 'guest'])
        self.assertEqual(users[1].home_dir, '/home/user')

    def test_placeholder_password(self):
        users = parse_passwd("svc:x:500:500:Service:/srv:/bin/false\nopen::501:501::/:\n")
        self.assertIsNone(users[0].password)
        self.assertIsNone(users[1].password)
        self.assertIn('svc:x:500', format_passwd(users))

    def test_comments_and_blank_lines(self):
        text = "# system accounts\n\nroot:admin:0:0:Root:/root:/bin/bash\n\n"
        self.assertEqual(len(parse_passwd(text)), 1)

    def test_wrong_field_count(self):
        with self.assertRaises(IdentityParseError) as ctx:
            parse_passwd("root:admin:0:0:Root:/root:/bin/bash\nbroken:line\n")
        self.assertEqual(ctx.exception.line_number, 2)
        self.assertEqual(ctx.exception.line, 'broken:line')

    def test_non_numeric_uid(self):
        with self.assertRaises(IdentityParseError):
            parse_passwd("bob:pw:abc:1000:Bob:/home/bob:/bin/bash\n")

    def test_negative_uid(self):
        with self.assertRaises(IdentityParseError):
            parse_passwd("bob:pw:-1:1000:Bob:/home/bob:/bin/bash\n")

    def test_duplicate_username(self):
        line = "bob:pw:1000:1000:Bob:/home/bob:/bin/bash\n"
        with self.assertRaises(IdentityParseError):
            parse_passwd(line + line)

    def test_empty_text(self):
        self.assertEqual(parse_passwd(''), [])
        self.assertEqual(format_passwd([]), '')


class TestGroupCodec(unittest.TestCase):
    """Test /etc/group parsing and formatting."""

    def test_format_default_groups(self):
        self.assertEqual(
            format_group(default_groups()),
            "root:x:0:root\nusers:x:100:user,guest\nadmin:x:10:user\n"
        )

    def test_members(self):
        groups = parse_group("devs:x:200:alice, bob,\nempty:x:201:\n")
        self.assertEqual(groups[0].members, ['alice', 'bob'])
        self.assertEqual(groups[1].members, [])

    def test_malformed(self):
        with self.assertRaises(IdentityParseError):
            parse_group("devs:x:200\n")
        with self.assertRaises(IdentityParseError):
            parse_group(":x:200:\n")


class TestIdentityStore(unittest.TestCase):
    """Test user and group management."""

    def setUp(self):
        self.store = IdentityStore()
        self.store.initialize()

    def test_add_user_allocates_next_uid(self):
        carol = self.store.add_user('carol', 'Carol C')
        self.assertEqual(carol.uid, 1002)
        self.assertEqual(carol.gid, 1002)
        self.assertEqual(carol.home_dir, '/home/carol')
        self.assertIsNone(carol.password)
        self.assertIn('carol:x:1002:1002:Carol C:/home/carol:/bin/bash', self.store.passwd_text())

    def test_uid_floor(self):
        store = IdentityStore(users=[User('root', 'admin', 0, 0, home_dir='/root')])
        self.assertEqual(store.add_user('first').uid, 1000)

    def test_duplicate_user(self):
        with self.assertRaises(IdentityExistsError):
            self.store.add_user('guest')

    def test_invalid_names(self):
        for name in ('', 'a:b', 'a b', 'a,b'):
            with self.subTest(name=name):
                with self.assertRaises(InvalidIdentityError):
                    self.store.add_user(name)
        self.assertEqual(len(self.store.users), 3)

    def test_colon_in_full_name_rejected(self):
        with self.assertRaises(InvalidIdentityError):
            self.store.add_user('dave', 'Dave: the admin')
        self.assertIsNone(self.store.get_user('dave'))

    def test_protected_users(self):
        for name in ('root', 'user'):
            with self.assertRaises(ProtectedIdentityError):
                self.store.delete_user(name)
        self.assertIsNotNone(self.store.get_user('root'))

    def test_delete_user(self):
        self.store.delete_user('guest')
        self.assertIsNone(self.store.get_user('guest'))
        with self.assertRaises(IdentityNotFoundError):
            self.store.delete_user('guest')

    def test_groups(self):
        devs = self.store.add_group('devs', ['user'])
        self.assertEqual(devs.gid, 101)
        self.assertIn('devs:x:101:user', self.store.group_text())
        with self.assertRaises(IdentityExistsError):
            self.store.add_group('devs')
        for name in ('root', 'users', 'admin'):
            with self.assertRaises(ProtectedIdentityError):
                self.store.delete_group(name)
        self.store.delete_group('devs')
        self.assertIsNone(self.store.get_group('devs'))

    def test_returned_records_are_copies(self):
        user = self.store.get_user('user')
        user.groups.append('hackers')
        self.assertNotIn('hackers', self.store.get_user('user').groups)

    def test_unknown_user_resolves_to_nobody(self):
        self.assertEqual(self.store.resolve_user('ghost').username, 'nobody')
        self.assertEqual(self.store.resolve_user(None).uid, 65534)

    def test_reset(self):
        self.store.add_user('carol')
        self.store.reset()
        self.assertEqual([u.username for u in self.store.users], ['root', 'user', 'guest'])


class TestIdentitySynchronizer(unittest.TestCase):
    """Test /etc/passwd and /etc/group sync."""

    def setUp(self):
        self.store = IdentityStore()
        self.sync = IdentitySynchronizer(self.store)
        self.root = default_tree(self.store.users, self.store.groups)

    def test_render_without_changes_returns_same_root(self):
        self.assertIs(self.sync.render_into(self.root), self.root)

    def test_render_after_mutation(self):
        self.store.add_user('carol')
        new_root = self.sync.render_into(self.root)
        self.assertIsNot(new_root, self.root)
        passwd = node_at(new_root, ['etc', 'passwd'])
        self.assertIn('carol:', passwd.content)
        # Untouched files keep their node
        self.assertIs(node_at(new_root, ['etc', 'group']), node_at(self.root, ['etc', 'group']))
        self.assertIs(new_root.get_child('home'), self.root.get_child('home'))

    def test_render_recreates_missing_file(self):
        etc = self.root.get_child('etc')
        root = self.root.with_child_replaced('etc', etc.with_child_removed('passwd'))
        restored = self.sync.render_into(root)
        passwd = node_at(restored, ['etc', 'passwd'])
        self.assertEqual(passwd.content, self.store.passwd_text())
        self.assertEqual(passwd.owner, 'root')

    def test_ingest_identical_text_is_noop(self):
        self.assertFalse(self.sync.ingest('/etc/passwd', self.store.passwd_text()))
        self.assertFalse(self.sync.ingest('/etc/group', self.store.group_text()))

    def test_ingest_new_user_keeps_supplementary_groups(self):
        text = self.store.passwd_text() + "dave:pw:2000:2000:Dave:/home/dave:/bin/bash\n"
        self.assertTrue(self.sync.ingest('/etc/passwd', text))
        self.assertEqual(self.store.get_user('dave').password, 'pw')
        self.assertEqual(self.store.get_user('user').groups, ['users', 'admin'])

    def test_ingest_corrupt_text_keeps_memory(self):
        Logger.clear_recent_logs()
        self.assertFalse(self.sync.ingest('/etc/passwd', "this is not a passwd file\n"))
        self.assertEqual(len(self.store.users), 3)
        warnings = Logger.get_recent_logs(level='WARNING', subsystem='identity')
        self.assertTrue(any('/etc/passwd' in w['message'] for w in warnings))

    def test_ingest_groups(self):
        text = self.store.group_text() + "devs:x:300:user\n"
        self.assertTrue(self.sync.ingest('/etc/group', text))
        self.assertEqual(self.store.get_group('devs').members, ['user'])

    def test_other_paths_are_ignored(self):
        self.assertFalse(self.sync.ingest('/etc/motd', 'root:x:0:0::/:'))
        self.assertFalse(IdentitySynchronizer.is_identity_path('/etc/passwd.bak'))

    def test_read_users(self):
        self.assertEqual(len(self.sync.read_users(self.root)), 3)
        etc = self.root.get_child('etc')
        broken = self.root.with_child_replaced(
            'etc',
            etc.with_child_replaced('passwd', etc.get_child('passwd').with_content('garbage'))
        )
        self.assertIsNone(self.sync.read_users(broken))


def run_tests():
    """Run all tests."""
    loader = unittest.TestLoader()
    suite = loader.loadTestsFromModule(sys.modules[__name__])

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(run_tests())
