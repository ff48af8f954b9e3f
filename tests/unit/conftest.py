# -*- coding: utf-8 -*-

# Copyright: (c) 2025, rpunt.exasol contributors
# Apache License, Version 2.0 (see LICENSE or http://www.apache.org/licenses/LICENSE-2.0)

"""
Shared fixtures: a mocked Ansible module and an in-memory Exasol.

FakeExasol stands in for ExasolHelper. It applies GRANT and REVOKE
statements to an in-memory catalog and answers the catalog queries the
CatalogReader sends, so reconciler tests can run whole scenarios and
assert on the statements issued.
"""

import re

import pytest
from unittest.mock import MagicMock

from plugins.module_utils.exasol_catalog import (
    SYS_PRIV_QUERY,
    ROLE_PRIV_QUERY,
    CONNECTION_PRIV_QUERY,
    OBJ_PRIV_QUERY,
    OBJ_PRIV_COUNT_QUERY,
    LIST_SYS_PRIVS_QUERY,
    LIST_OBJ_PRIVS_QUERY,
    LIST_ROLE_PRIVS_QUERY,
    LIST_CONNECTION_PRIVS_QUERY,
)
from plugins.module_utils.exasol_errors import ExecutionError

# What a server that expands GRANT ALL ON TABLE records instead of ALL
EXPANDED_ALL = ('ALTER', 'DELETE', 'INSERT', 'REFERENCES', 'SELECT', 'UPDATE')

CONNECTION_RE = re.compile(r'^(GRANT|REVOKE) CONNECTION "(\w+)" (?:TO|FROM) "(\w+)"$')
OBJECT_RE = re.compile(r'^(GRANT|REVOKE) ([A-Z ]+) ON ([A-Z]+) (\S+) (?:TO|FROM) "(\w+)"$')
ROLE_RE = re.compile(r'^(GRANT|REVOKE) "(\w+)" (?:TO|FROM) "(\w+)"( WITH ADMIN OPTION)?$')
SYSTEM_RE = re.compile(r'^(GRANT|REVOKE) ([A-Z ]+) (?:TO|FROM) "(\w+)"( WITH ADMIN OPTION)?$')


def _split_target(target):
    parts = [part.strip('"') for part in target.split('.')]
    if len(parts) == 1:
        return None, parts[0]
    return parts[0], parts[1]


class FakeCatalog(object):
    """
    The four privilege views as Python collections.

    Args:
        expand_all: Record GRANT ALL on an object as the individual
                    privileges in EXPANDED_ALL, like some server versions do
        admin_tokens: How ADMIN_OPTION is reported, as (true, false)
    """

    def __init__(self, expand_all=False, admin_tokens=('TRUE', 'FALSE')):
        self.expand_all = expand_all
        self.admin_true, self.admin_false = admin_tokens
        self.sys_privs = {}
        self.obj_privs = set()
        self.role_privs = {}
        self.conn_privs = set()

    def admin_token(self, value):
        return self.admin_true if value else self.admin_false

    def add_system_privilege(self, grantee, privilege, admin_option=False):
        self.sys_privs[(grantee, privilege)] = self.admin_token(admin_option)

    def add_object_privilege(self, grantee, privilege, object_type, object_name):
        schema, name = _split_target(object_name)
        self.obj_privs.add((grantee, object_type, schema, name, privilege))

    def add_role_grant(self, role, grantee, admin_option=False):
        self.role_privs[(role, grantee)] = self.admin_token(admin_option)

    def add_connection_grant(self, connection_name, grantee):
        self.conn_privs.add((connection_name, grantee))

    def object_privileges(self, grantee, object_type, object_name):
        schema, name = _split_target(object_name)
        return sorted(
            row[4] for row in self.obj_privs
            if row[:4] == (grantee, object_type, schema, name)
        )


class FakeExasol(object):
    """
    Drop-in for ExasolHelper backed by a FakeCatalog.

    `fail` maps a statement to the ExecutionError raised when it is
    executed, to simulate server errors.
    """

    def __init__(self, catalog=None, check_mode=False):
        self.catalog = catalog or FakeCatalog()
        self.check_mode = check_mode
        self.queries = []
        self.executed = []
        self.catalog_queries = []
        self.fail = {}
        self.closed = False

    def execute(self, statement):
        if self.check_mode:
            self.queries.append(statement)
            return False
        if statement in self.fail:
            raise self.fail[statement]
        self._apply(statement)
        self.executed.append(statement)
        self.queries.append(statement)
        return True

    def _missing(self, statement):
        return ExecutionError(statement, "Object does not exist: privilege not granted", '42500')

    def _apply(self, statement):
        catalog = self.catalog

        match = CONNECTION_RE.match(statement)
        if match:
            verb, connection_name, grantee = match.groups()
            key = (connection_name, grantee)
            if verb == 'GRANT':
                catalog.conn_privs.add(key)
            elif key in catalog.conn_privs:
                catalog.conn_privs.remove(key)
            else:
                raise self._missing(statement)
            return

        match = OBJECT_RE.match(statement)
        if match:
            verb, privilege, object_type, target, grantee = match.groups()
            schema, name = _split_target(target)
            prefix = (grantee, object_type, schema, name)
            if verb == 'GRANT':
                privileges = EXPANDED_ALL if privilege == 'ALL' and catalog.expand_all else (privilege,)
                for granted in privileges:
                    catalog.obj_privs.add(prefix + (granted,))
                return
            if privilege == 'ALL':
                rows = set(row for row in catalog.obj_privs if row[:4] == prefix)
            else:
                rows = set([prefix + (privilege,)]) & catalog.obj_privs
            if not rows:
                raise self._missing(statement)
            catalog.obj_privs -= rows
            return

        match = ROLE_RE.match(statement)
        if match:
            verb, role, grantee, admin = match.groups()
            key = (role, grantee)
            if verb == 'GRANT':
                catalog.role_privs[key] = catalog.admin_token(bool(admin))
            elif key in catalog.role_privs:
                del catalog.role_privs[key]
            else:
                raise self._missing(statement)
            return

        match = SYSTEM_RE.match(statement)
        if match:
            verb, privilege, grantee, admin = match.groups()
            key = (grantee, privilege)
            if verb == 'GRANT':
                catalog.sys_privs[key] = catalog.admin_token(bool(admin))
            elif key in catalog.sys_privs:
                del catalog.sys_privs[key]
            else:
                raise self._missing(statement)
            return

        raise ExecutionError(statement, "SQL syntax error: unexpected statement")

    def _object_rows(self, params):
        rows = []
        for grantee, object_type, schema, name, privilege in self.catalog.obj_privs:
            if (grantee, object_type, name) != (params['grantee'], params['object_type'], params['object_name']):
                continue
            if 'object_schema' in params and schema != params['object_schema']:
                continue
            rows.append(privilege)
        return rows

    def query_row(self, query, params=None):
        self.catalog_queries.append((query, params))
        catalog = self.catalog

        if query == SYS_PRIV_QUERY:
            admin = catalog.sys_privs.get((params['grantee'], params['privilege']))
            return None if admin is None else (admin,)
        if query == ROLE_PRIV_QUERY:
            admin = catalog.role_privs.get((params['role'], params['grantee']))
            return None if admin is None else (admin,)
        if query == CONNECTION_PRIV_QUERY:
            found = (params['connection_name'], params['grantee']) in catalog.conn_privs
            return (1,) if found else None
        if query.startswith(OBJ_PRIV_QUERY):
            return (1,) if params['privilege'] in self._object_rows(params) else None
        if query.startswith(OBJ_PRIV_COUNT_QUERY):
            return (len(self._object_rows(params)),)
        raise AssertionError(f"Unexpected catalog query: {query}")

    def query_all(self, query, params=None):
        self.catalog_queries.append((query, params))
        catalog = self.catalog
        grantee = params['grantee']

        if query == LIST_SYS_PRIVS_QUERY:
            return sorted((p, a) for (g, p), a in catalog.sys_privs.items() if g == grantee)
        if query == LIST_OBJ_PRIVS_QUERY:
            return sorted(
                ((schema, name, object_type, privilege)
                 for g, object_type, schema, name, privilege in catalog.obj_privs
                 if g == grantee),
                key=lambda row: (row[2], row[0] or '', row[1], row[3]),
            )
        if query == LIST_ROLE_PRIVS_QUERY:
            return sorted((r, a) for (r, g), a in catalog.role_privs.items() if g == grantee)
        if query == LIST_CONNECTION_PRIVS_QUERY:
            return sorted((c,) for c, g in catalog.conn_privs if g == grantee)
        raise AssertionError(f"Unexpected catalog query: {query}")

    def close(self):
        self.closed = True


@pytest.fixture
def mock_module():
    module = MagicMock()
    module.fail_json = MagicMock(side_effect=Exception("Module failed"))
    module.exit_json = MagicMock()
    module.warn = MagicMock()
    module.debug = MagicMock()
    module.check_mode = False
    module.params = {}
    return module


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def db(catalog):
    return FakeExasol(catalog)
