# -*- coding: utf-8 -*-

"""
Shared fixtures for the unit tests.

The modules import each other as ansible_collections.rpunt.snowflake, so the
checkout is exposed under that name on sys.path before any test is imported.
"""

import atexit
import os
import re
import shutil
import sys
import tempfile
from unittest.mock import MagicMock

import pytest

COLLECTION_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))


def _expose_collection():
    base = tempfile.mkdtemp(prefix='ansible_collections_')
    namespace_dir = os.path.join(base, 'ansible_collections', 'rpunt')
    os.makedirs(namespace_dir)
    os.symlink(COLLECTION_ROOT, os.path.join(namespace_dir, 'snowflake'))
    sys.path.insert(0, base)
    atexit.register(shutil.rmtree, base, True)


_expose_collection()

from ansible_collections.rpunt.snowflake.plugins.module_utils.errors import RemoteExecutionError  # noqa: E402

OBJECT_TYPES = r'(RESOURCE MONITOR|WAREHOUSE|DATABASE|SCHEMA|INTEGRATION)'
GRANT_RE = re.compile(r'^GRANT (.+) ON ' + OBJECT_TYPES + r' (.+) TO ROLE "((?:[^"]|"")+)"( WITH GRANT OPTION)?$', re.DOTALL)
REVOKE_RE = re.compile(r'^REVOKE (.+) ON ' + OBJECT_TYPES + r' (.+) FROM ROLE "((?:[^"]|"")+)"$', re.DOTALL)
SHOW_RE = re.compile(r'^SHOW GRANTS ON ' + OBJECT_TYPES + r' (.+)$', re.DOTALL)


class AnsibleFailJson(Exception):
    pass


class AnsibleExitJson(Exception):
    pass


class FakeSnowflake(object):
    """
    In-memory stand-in for SnowflakeHelper.

    Keeps grants per object, records every statement and can be told to fail
    statements that contain a given fragment.
    """

    def __init__(self):
        self.queries = []
        self.grants = {}
        self.missing = set()
        self.failures = []
        self.closed = False

    def add_object(self, object_type, qualified_name):
        self.grants.setdefault((object_type, qualified_name), [])

    def add_grant(self, object_type, qualified_name, privilege, role, grant_option=False):
        self.add_object(object_type, qualified_name)
        self.grants[(object_type, qualified_name)].append(dict(
            privilege=privilege,
            granted_on=object_type.replace(' ', '_'),
            granted_to='ROLE',
            grantee_name=role,
            grant_option='true' if grant_option else 'false',
        ))

    def drop_object(self, object_type, qualified_name):
        self.grants.pop((object_type, qualified_name), None)
        self.missing.add((object_type, qualified_name))

    def fail_on(self, fragment, message='SQL execution error', errno=3001):
        self.failures.append((fragment, message, errno))

    def rows(self, object_type, qualified_name):
        return list(self.grants.get((object_type, qualified_name), []))

    def _check(self, query, key):
        for fragment, message, errno in self.failures:
            if fragment in query:
                raise RemoteExecutionError(message, query=query, errno=errno)
        if key in self.missing or key not in self.grants:
            raise RemoteExecutionError(
                "%s %s does not exist or not authorized." % key, query=query, errno=2003
            )

    def execute_query(self, query, params=None, fetch=True):
        self.queries.append(query)

        match = GRANT_RE.match(query)
        if match:
            privilege, object_type, name, role, grant_option = match.groups()
            key = (object_type, name)
            self._check(query, key)
            privilege = 'ALL' if privilege == 'ALL PRIVILEGES' else privilege
            role = role.replace('""', '"')
            rows = self.grants[key]
            rows[:] = [r for r in rows if not (r['privilege'] == privilege and r['grantee_name'] == role)]
            self.add_grant(object_type, name, privilege, role, bool(grant_option))
            return True

        match = REVOKE_RE.match(query)
        if match:
            privilege, object_type, name, role = match.groups()
            key = (object_type, name)
            self._check(query, key)
            privilege = 'ALL' if privilege == 'ALL PRIVILEGES' else privilege
            role = role.replace('""', '"')
            rows = self.grants[key]
            rows[:] = [r for r in rows if not (r['privilege'] == privilege and r['grantee_name'] == role)]
            return True

        match = SHOW_RE.match(query)
        if match:
            key = match.groups()
            self._check(query, key)
            return self.rows(*key)

        raise AssertionError("Unexpected statement: %s" % query)

    def close(self):
        self.closed = True


@pytest.fixture
def fake_snowflake():
    return FakeSnowflake()


@pytest.fixture
def mock_module():
    module = MagicMock()
    module.params = {}
    module.check_mode = False
    module.fail_json = MagicMock(side_effect=AnsibleFailJson("Module failed"))
    module.exit_json = MagicMock(side_effect=AnsibleExitJson("Module exited"))
    module.warn = MagicMock()
    module.debug = MagicMock()
    return module
