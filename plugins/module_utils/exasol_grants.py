# -*- coding: utf-8 -*-

# Copyright: (c) 2025, rpunt.exasol contributors
# Apache License, Version 2.0 (see LICENSE or http://www.apache.org/licenses/LICENSE-2.0)

"""
Grant declarations and their persisted identities.

Each grant kind is its own class with its own required fields, so a
declaration that exists is always complete: names are validated and
uppercased on construction and an incomplete declaration cannot be built.

Identities use '|' as delimiter:

    system_privilege  GRANTEE|PRIVILEGE|ADMIN_OPTION
    object_privilege  GRANTEE|PRIV1,PRIV2|OBJECT_TYPE|OBJECT_NAME
    role_grant        ROLE|GRANTEE|ADMIN_OPTION
    connection_grant  CONNECTION_NAME|GRANTEE

An unset admin option renders as 'false' in the identity. The declaration
itself keeps None, so a read never turns "no opinion" into "false".
"""

from __future__ import absolute_import, division, print_function
__metaclass__ = type

from .exasol_errors import ValidationError
from .exasol_identifiers import (
    validate_identifier,
    validate_keyword,
    validate_qualified_name,
)

SYSTEM_PRIVILEGE = 'system_privilege'
OBJECT_PRIVILEGE = 'object_privilege'
ROLE_GRANT = 'role_grant'
CONNECTION_GRANT = 'connection_grant'

GRANT_KINDS = (SYSTEM_PRIVILEGE, OBJECT_PRIVILEGE, ROLE_GRANT, CONNECTION_GRANT)

ALL_PRIVILEGES = 'ALL'

ID_DELIMITER = '|'
PRIVILEGE_DELIMITER = ','

ADMIN_TRUE = 'true'
ADMIN_FALSE = 'false'


def _admin_option(value):
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    raise ValidationError(
        f"Invalid admin option {value!r}: expected true, false or unset",
        field='admin_option',
        value=value,
    )


def _admin_token(value):
    return ADMIN_TRUE if value else ADMIN_FALSE


def _parse_admin_token(token):
    folded = token.strip().lower()
    if folded == ADMIN_TRUE:
        return True
    if folded == ADMIN_FALSE:
        return False
    raise ValidationError(
        f"Invalid admin option token {token!r}: expected 'true' or 'false'",
        field='admin_option',
        value=token,
    )


def _normalize_privileges(privileges):
    if isinstance(privileges, str):
        privileges = [privileges]
    normalized = set()
    for privilege in privileges or ():
        privilege = validate_keyword(privilege, 'privilege')
        if privilege == 'ALL PRIVILEGES':
            privilege = ALL_PRIVILEGES
        normalized.add(privilege)
    if not normalized:
        raise ValidationError(
            "At least one privilege is required",
            field='privileges',
            value=privileges,
        )
    return tuple(sorted(normalized))


class GrantDeclaration(object):
    """
    Base class of the four grant kinds.

    Subclasses set `kind` and `fields` (constructor arguments in order) and
    implement `target()`, the coordinates that name the grant's subject and
    object. Two declarations with different targets are different grants;
    two with equal targets differ at most in privileges or admin option.
    """

    kind = None
    fields = ()
    admin_option = None
    supports_admin_option = False

    def _values(self):
        return tuple(getattr(self, field) for field in self.fields)

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return self._values() == other._values()

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self):
        return hash((self.kind,) + self._values())

    def __repr__(self):
        args = ', '.join(f"{field}={getattr(self, field)!r}" for field in self.fields)
        return f"{type(self).__name__}({args})"

    def replace(self, **changes):
        """Return a copy with some fields replaced; the original is untouched"""
        values = dict(zip(self.fields, self._values()))
        values.update(changes)
        return type(self)(**values)

    @property
    def identity(self):
        return identity(self)

    def target(self):
        raise NotImplementedError

    def describe(self):
        """Short human readable context for error messages"""
        raise NotImplementedError

    def to_dict(self):
        raise NotImplementedError


class SystemPrivilegeGrant(GrantDeclaration):
    """A database-wide privilege such as CREATE SESSION held by a grantee"""

    kind = SYSTEM_PRIVILEGE
    fields = ('grantee', 'privilege', 'admin_option')
    supports_admin_option = True

    def __init__(self, grantee, privilege, admin_option=None):
        self.grantee = validate_identifier(grantee, 'grantee')
        self.privilege = validate_keyword(privilege, 'privilege')
        self.admin_option = _admin_option(admin_option)

    @property
    def privileges(self):
        return (self.privilege,)

    def target(self):
        return (self.grantee, self.privilege)

    def describe(self):
        return f"system privilege {self.privilege} for {self.grantee}"

    def to_dict(self):
        return dict(
            grantee=self.grantee,
            privilege=self.privilege,
            with_admin_option=self.admin_option,
        )


class ObjectPrivilegeGrant(GrantDeclaration):
    """One or more privileges on a schema, table, view, script or function"""

    kind = OBJECT_PRIVILEGE
    fields = ('grantee', 'privileges', 'object_type', 'object_name')

    def __init__(self, grantee, privileges, object_type, object_name):
        self.grantee = validate_identifier(grantee, 'grantee')
        self.privileges = _normalize_privileges(privileges)
        self.object_type = validate_keyword(object_type, 'object_type')
        self.object_name = validate_qualified_name(object_name, 'object_name')

    def target(self):
        return (self.grantee, self.object_type, self.object_name)

    def describe(self):
        privileges = PRIVILEGE_DELIMITER.join(self.privileges)
        return f"{privileges} on {self.object_type} {self.object_name} for {self.grantee}"

    def to_dict(self):
        return dict(
            grantee=self.grantee,
            privileges=list(self.privileges),
            object_type=self.object_type,
            object_name=self.object_name,
        )


class RoleGrant(GrantDeclaration):
    """Membership of a grantee in a role"""

    kind = ROLE_GRANT
    fields = ('role', 'grantee', 'admin_option')
    supports_admin_option = True

    def __init__(self, role, grantee, admin_option=None):
        self.role = validate_identifier(role, 'role')
        self.grantee = validate_identifier(grantee, 'grantee')
        self.admin_option = _admin_option(admin_option)

    def target(self):
        return (self.role, self.grantee)

    def describe(self):
        return f"role {self.role} for {self.grantee}"

    def to_dict(self):
        return dict(
            role=self.role,
            grantee=self.grantee,
            with_admin_option=self.admin_option,
        )


class ConnectionGrant(GrantDeclaration):
    """Access of a grantee to a named connection object"""

    kind = CONNECTION_GRANT
    fields = ('connection_name', 'grantee')

    def __init__(self, connection_name, grantee):
        self.connection_name = validate_identifier(connection_name, 'connection_name')
        self.grantee = validate_identifier(grantee, 'grantee')

    def target(self):
        return (self.connection_name, self.grantee)

    def describe(self):
        return f"connection {self.connection_name} for {self.grantee}"

    def to_dict(self):
        return dict(
            connection_name=self.connection_name,
            grantee=self.grantee,
        )


DECLARATION_TYPES = {
    SYSTEM_PRIVILEGE: SystemPrivilegeGrant,
    OBJECT_PRIVILEGE: ObjectPrivilegeGrant,
    ROLE_GRANT: RoleGrant,
    CONNECTION_GRANT: ConnectionGrant,
}

ID_FORMATS = {
    SYSTEM_PRIVILEGE: 'GRANTEE|PRIVILEGE|ADMIN_OPTION',
    OBJECT_PRIVILEGE: 'GRANTEE|PRIVILEGE1,PRIVILEGE2|OBJECT_TYPE|OBJECT_NAME',
    ROLE_GRANT: 'ROLE|GRANTEE|ADMIN_OPTION',
    CONNECTION_GRANT: 'CONNECTION_NAME|GRANTEE',
}


def identity(decl):
    """
    Compute the canonical identifier of a declaration.

    Privileges come out of the declaration already uppercased, deduplicated
    and sorted, so list order and case in the task never change the result.
    """
    if decl.kind == SYSTEM_PRIVILEGE:
        parts = [decl.grantee, decl.privilege, _admin_token(decl.admin_option)]
    elif decl.kind == OBJECT_PRIVILEGE:
        parts = [
            decl.grantee,
            PRIVILEGE_DELIMITER.join(decl.privileges),
            decl.object_type,
            decl.object_name,
        ]
    elif decl.kind == ROLE_GRANT:
        parts = [decl.role, decl.grantee, _admin_token(decl.admin_option)]
    elif decl.kind == CONNECTION_GRANT:
        parts = [decl.connection_name, decl.grantee]
    else:
        raise ValidationError(f"Unknown grant kind {decl.kind!r}", field='kind', value=decl.kind)
    return ID_DELIMITER.join(parts)


def parse_identity(kind, identifier):
    """
    Rebuild a declaration from a persisted identifier.

    Args:
        kind: One of GRANT_KINDS
        identifier: An identifier previously returned by identity()

    Returns:
        GrantDeclaration: The declaration the identifier was computed from.
        The admin option of system privileges and role grants comes back
        as an explicit bool, since the identifier cannot carry "unset".

    Raises:
        ValidationError: if the identifier does not match the kind's format
    """
    if kind not in DECLARATION_TYPES:
        raise ValidationError(f"Unknown grant kind {kind!r}", field='kind', value=kind)

    parts = identifier.split(ID_DELIMITER) if identifier else []
    expected = ID_FORMATS[kind]
    if len(parts) != len(expected.split(ID_DELIMITER)):
        raise ValidationError(
            f"Invalid {kind} identifier {identifier!r}: expected format {expected!r}",
            field='id',
            value=identifier,
        )

    if kind == SYSTEM_PRIVILEGE:
        return SystemPrivilegeGrant(parts[0], parts[1], _parse_admin_token(parts[2]))
    if kind == OBJECT_PRIVILEGE:
        privileges = [p.strip() for p in parts[1].split(PRIVILEGE_DELIMITER) if p.strip()]
        return ObjectPrivilegeGrant(parts[0], privileges, parts[2], parts[3])
    if kind == ROLE_GRANT:
        return RoleGrant(parts[0], parts[1], _parse_admin_token(parts[2]))
    return ConnectionGrant(parts[0], parts[1])
