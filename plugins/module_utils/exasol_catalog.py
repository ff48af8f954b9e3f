# -*- coding: utf-8 -*-

# Copyright: (c) 2025, rpunt.exasol contributors
# Apache License, Version 2.0 (see LICENSE or http://www.apache.org/licenses/LICENSE-2.0)

"""
Point lookups against the Exasol privilege catalog views.

Every grant kind lives in its own view:

    system privileges      EXA_DBA_SYS_PRIVS
    object privileges      EXA_DBA_OBJ_PRIVS
    role grants            EXA_DBA_ROLE_PRIVS
    connection grants      EXA_DBA_CONNECTION_PRIVS

Connection grants are not object privileges as far as the catalog is
concerned; looking them up in EXA_DBA_OBJ_PRIVS never finds them.
"""

from __future__ import absolute_import, division, print_function
__metaclass__ = type

from collections import namedtuple

from .exasol_errors import ValidationError
from .exasol_grants import (
    ALL_PRIVILEGES,
    SYSTEM_PRIVILEGE,
    OBJECT_PRIVILEGE,
    ROLE_GRANT,
    CONNECTION_GRANT,
    SystemPrivilegeGrant,
    ObjectPrivilegeGrant,
    RoleGrant,
    ConnectionGrant,
)
from .exasol_identifiers import split_qualified

# Server builds disagree on how ADMIN_OPTION comes back: SaaS reports
# 'TRUE' or '1', the docker image 'true', newer drivers a real bool.
TRUTHY_TOKENS = frozenset(['TRUE', '1'])

SYS_PRIV_QUERY = (
    "SELECT ADMIN_OPTION FROM EXA_DBA_SYS_PRIVS "
    "WHERE GRANTEE = {grantee} AND PRIVILEGE = {privilege}"
)

ROLE_PRIV_QUERY = (
    "SELECT ADMIN_OPTION FROM EXA_DBA_ROLE_PRIVS "
    "WHERE GRANTED_ROLE = {role} AND GRANTEE = {grantee}"
)

CONNECTION_PRIV_QUERY = (
    "SELECT 1 FROM EXA_DBA_CONNECTION_PRIVS "
    "WHERE GRANTED_CONNECTION = {connection_name} AND GRANTEE = {grantee}"
)

OBJ_PRIV_FILTER = "GRANTEE = {grantee} AND OBJECT_TYPE = {object_type} AND OBJECT_NAME = {object_name}"
OBJ_PRIV_SCHEMA_FILTER = " AND OBJECT_SCHEMA = {object_schema}"

OBJ_PRIV_QUERY = "SELECT 1 FROM EXA_DBA_OBJ_PRIVS WHERE PRIVILEGE = {privilege} AND "
OBJ_PRIV_COUNT_QUERY = "SELECT COUNT(*) FROM EXA_DBA_OBJ_PRIVS WHERE "

LIST_SYS_PRIVS_QUERY = (
    "SELECT PRIVILEGE, ADMIN_OPTION FROM EXA_DBA_SYS_PRIVS "
    "WHERE GRANTEE = {grantee} ORDER BY PRIVILEGE"
)
LIST_OBJ_PRIVS_QUERY = (
    "SELECT OBJECT_SCHEMA, OBJECT_NAME, OBJECT_TYPE, PRIVILEGE FROM EXA_DBA_OBJ_PRIVS "
    "WHERE GRANTEE = {grantee} ORDER BY OBJECT_TYPE, OBJECT_SCHEMA, OBJECT_NAME, PRIVILEGE"
)
LIST_ROLE_PRIVS_QUERY = (
    "SELECT GRANTED_ROLE, ADMIN_OPTION FROM EXA_DBA_ROLE_PRIVS "
    "WHERE GRANTEE = {grantee} ORDER BY GRANTED_ROLE"
)
LIST_CONNECTION_PRIVS_QUERY = (
    "SELECT GRANTED_CONNECTION FROM EXA_DBA_CONNECTION_PRIVS "
    "WHERE GRANTEE = {grantee} ORDER BY GRANTED_CONNECTION"
)

ObservedGrantState = namedtuple('ObservedGrantState', ['found', 'admin_option'])

NOT_FOUND = ObservedGrantState(False, None)


def normalize_admin_option(value):
    """Fold whatever the server returned for ADMIN_OPTION into a bool"""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().upper() in TRUTHY_TOKENS


class CatalogReader(object):
    """
    Answer "does this grant currently exist?" for every grant kind.

    Args:
        connection: Anything with query_row(query, params) and
                    query_all(query, params), normally an ExasolHelper
        module: The Ansible module, used for debug logging
    """

    def __init__(self, connection, module):
        self.connection = connection
        self.module = module

    def exists(self, decl):
        """
        Look a declaration up in its catalog view.

        Returns:
            ObservedGrantState: found is False when the grant is absent,
            which is a normal answer and not an error. admin_option is the
            normalized observed flag for kinds that have one, else None.
            For object privileges found means every declared privilege
            was observed.
        """
        if decl.kind == SYSTEM_PRIVILEGE:
            return self.system_privilege(decl)
        if decl.kind == OBJECT_PRIVILEGE:
            observed = self.observed_privileges(decl)
            return ObservedGrantState(observed == decl.privileges, None)
        if decl.kind == ROLE_GRANT:
            return self.role_grant(decl)
        if decl.kind == CONNECTION_GRANT:
            return self.connection_grant(decl)
        raise ValidationError(f"Unknown grant kind {decl.kind!r}", field='kind', value=decl.kind)

    def system_privilege(self, decl):
        self.module.debug(f"Checking system privilege {decl.privilege} for {decl.grantee}")
        row = self.connection.query_row(
            SYS_PRIV_QUERY,
            dict(grantee=decl.grantee, privilege=decl.privilege),
        )
        if row is None:
            return NOT_FOUND
        return ObservedGrantState(True, normalize_admin_option(row[0]))

    def role_grant(self, decl):
        self.module.debug(f"Checking role grant {decl.role} for {decl.grantee}")
        row = self.connection.query_row(
            ROLE_PRIV_QUERY,
            dict(role=decl.role, grantee=decl.grantee),
        )
        if row is None:
            return NOT_FOUND
        return ObservedGrantState(True, normalize_admin_option(row[0]))

    def connection_grant(self, decl):
        self.module.debug(f"Checking connection grant {decl.connection_name} for {decl.grantee}")
        row = self.connection.query_row(
            CONNECTION_PRIV_QUERY,
            dict(connection_name=decl.connection_name, grantee=decl.grantee),
        )
        return ObservedGrantState(row is not None, None)

    def _object_filter(self, decl):
        schema, name = split_qualified(decl.object_name)
        params = dict(
            grantee=decl.grantee,
            object_type=decl.object_type,
            object_name=name,
        )
        where = OBJ_PRIV_FILTER
        if schema is not None:
            where += OBJ_PRIV_SCHEMA_FILTER
            params['object_schema'] = schema
        return where, params

    def object_privilege(self, decl, privilege):
        """
        Check a single privilege of an object privilege declaration.

        'ALL' is satisfied either by a literal ALL row or, when the server
        expanded ALL into individual privileges at grant time, by any row
        for the grantee and object.
        """
        where, params = self._object_filter(decl)
        self.module.debug(
            f"Checking object privilege {privilege} on {decl.object_type} "
            f"{decl.object_name} for {decl.grantee}"
        )

        row = self.connection.query_row(OBJ_PRIV_QUERY + where, dict(params, privilege=privilege))
        if row is not None:
            return True
        if privilege != ALL_PRIVILEGES:
            return False

        row = self.connection.query_row(OBJ_PRIV_COUNT_QUERY + where, params)
        count = int(row[0]) if row and row[0] is not None else 0
        if count > 0:
            self.module.debug(f"Found {count} expanded privileges satisfying ALL on {decl.object_name}")
            return True
        return False

    def observed_privileges(self, decl):
        """Return the subset of the declared privileges present in the catalog"""
        return tuple(p for p in decl.privileges if self.object_privilege(decl, p))

    def list_grants(self, grantee):
        """
        Read every grant a grantee currently holds back into declarations.

        Object privilege rows on the same object fold into one declaration.
        Rows naming objects that cannot be expressed as unquoted identifiers
        are skipped with a warning.

        Returns:
            dict: grant kind -> list of GrantDeclaration
        """
        params = dict(grantee=grantee)
        result = {kind: [] for kind in (SYSTEM_PRIVILEGE, OBJECT_PRIVILEGE, ROLE_GRANT, CONNECTION_GRANT)}

        for privilege, admin_option in self.connection.query_all(LIST_SYS_PRIVS_QUERY, params):
            self._collect(result[SYSTEM_PRIVILEGE], SystemPrivilegeGrant,
                          grantee, privilege, normalize_admin_option(admin_option))

        objects = {}
        for schema, name, object_type, privilege in self.connection.query_all(LIST_OBJ_PRIVS_QUERY, params):
            object_name = f"{schema}.{name}" if schema else name
            objects.setdefault((object_type, object_name), []).append(privilege)
        for (object_type, object_name), privileges in sorted(objects.items()):
            self._collect(result[OBJECT_PRIVILEGE], ObjectPrivilegeGrant,
                          grantee, privileges, object_type, object_name)

        for role, admin_option in self.connection.query_all(LIST_ROLE_PRIVS_QUERY, params):
            self._collect(result[ROLE_GRANT], RoleGrant,
                          role, grantee, normalize_admin_option(admin_option))

        for (connection_name,) in self.connection.query_all(LIST_CONNECTION_PRIVS_QUERY, params):
            self._collect(result[CONNECTION_GRANT], ConnectionGrant, connection_name, grantee)

        return result

    def _collect(self, bucket, declaration_type, *args):
        try:
            bucket.append(declaration_type(*args))
        except ValidationError as e:
            self.module.warn(f"Skipping catalog row {args!r}: {e}")
