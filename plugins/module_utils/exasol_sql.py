# -*- coding: utf-8 -*-

# Copyright: (c) 2025, rpunt.exasol contributors
# Apache License, Version 2.0 (see LICENSE or http://www.apache.org/licenses/LICENSE-2.0)

from __future__ import absolute_import, division, print_function
__metaclass__ = type

from .exasol_errors import ValidationError
from .exasol_grants import (
    SYSTEM_PRIVILEGE,
    OBJECT_PRIVILEGE,
    ROLE_GRANT,
    CONNECTION_GRANT,
)
from .exasol_identifiers import qualify, quote_identifier

ADMIN_OPTION_CLAUSE = " WITH ADMIN OPTION"


def _object_privileges(decl, privileges):
    if not decl.object_type or not decl.object_name:
        raise ValidationError(
            "object_type and object_name are required for object privileges",
            field='object_name',
            value=decl.object_name,
        )
    if privileges is None:
        return decl.privileges
    return tuple(sorted(set(p.upper() for p in privileges)))


def build_grant(decl, privileges=None):
    """
    Render the GRANT statements for a declaration.

    Args:
        decl: A GrantDeclaration
        privileges: For object privileges, grant only this subset of
                    privileges instead of the declared set

    Returns:
        list: One statement per privilege for object privileges, a single
              statement for every other kind
    """
    grantee = quote_identifier(decl.grantee)

    if decl.kind == SYSTEM_PRIVILEGE:
        statement = f"GRANT {decl.privilege} TO {grantee}"
        if decl.admin_option is True:
            statement += ADMIN_OPTION_CLAUSE
        return [statement]

    if decl.kind == OBJECT_PRIVILEGE:
        target = f"{decl.object_type} {qualify(decl.object_name)}"
        return [
            f"GRANT {privilege} ON {target} TO {grantee}"
            for privilege in _object_privileges(decl, privileges)
        ]

    if decl.kind == ROLE_GRANT:
        statement = f"GRANT {quote_identifier(decl.role)} TO {grantee}"
        if decl.admin_option is True:
            statement += ADMIN_OPTION_CLAUSE
        return [statement]

    if decl.kind == CONNECTION_GRANT:
        return [f"GRANT CONNECTION {quote_identifier(decl.connection_name)} TO {grantee}"]

    raise ValidationError(f"Unknown grant kind {decl.kind!r}", field='kind', value=decl.kind)


def build_revoke(decl, privileges=None):
    """Render the REVOKE statements for a declaration, see build_grant()"""
    grantee = quote_identifier(decl.grantee)

    if decl.kind == SYSTEM_PRIVILEGE:
        return [f"REVOKE {decl.privilege} FROM {grantee}"]

    if decl.kind == OBJECT_PRIVILEGE:
        target = f"{decl.object_type} {qualify(decl.object_name)}"
        return [
            f"REVOKE {privilege} ON {target} FROM {grantee}"
            for privilege in _object_privileges(decl, privileges)
        ]

    if decl.kind == ROLE_GRANT:
        return [f"REVOKE {quote_identifier(decl.role)} FROM {grantee}"]

    if decl.kind == CONNECTION_GRANT:
        return [f"REVOKE CONNECTION {quote_identifier(decl.connection_name)} FROM {grantee}"]

    raise ValidationError(f"Unknown grant kind {decl.kind!r}", field='kind', value=decl.kind)
