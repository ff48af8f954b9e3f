# -*- coding: utf-8 -*-

# Copyright: (c) 2025, rpunt.exasol contributors
# Apache License, Version 2.0 (see LICENSE or http://www.apache.org/licenses/LICENSE-2.0)

"""
Reconcile declared grants with the Exasol catalog.

A reconciler owns one grant kind and offers create/read/update/delete over
declarations, plus ensure()/ensure_absent() which implement the
state=present / state=absent flow of the modules:

    read -> absent            -> create
         -> identity matches  -> nothing to do
         -> identity differs  -> update(observed, declared)

Updates never alter a grant in place. A changed target is revoked under
the old declaration and granted under the new one; a changed admin option
is revoked and re-granted; a changed object privilege set only touches
the privileges that were added or removed.
"""

from __future__ import absolute_import, division, print_function
__metaclass__ = type

from collections import namedtuple

from .exasol_catalog import CatalogReader
from .exasol_errors import (
    ExasolGrantError,
    ExecutionError,
    PartialUpdateError,
    ValidationError,
)
from .exasol_grants import (
    SYSTEM_PRIVILEGE,
    OBJECT_PRIVILEGE,
    ROLE_GRANT,
    CONNECTION_GRANT,
    PRIVILEGE_DELIMITER,
    parse_identity,
)
from .exasol_sql import build_grant, build_revoke

GrantOutcome = namedtuple('GrantOutcome', ['changed', 'record', 'queries', 'failed'])

DeleteResult = namedtuple('DeleteResult', ['applied', 'failed'])


class ReconciledGrant(object):
    """
    A declaration after a reconciler operation.

    The identity is always computed from the declaration, never stored on
    its own. For object privileges read back from the catalog the
    declaration holds the observed subset of privileges.
    """

    def __init__(self, declaration, statements=None):
        self.declaration = declaration
        self.statements = list(statements or [])

    @property
    def identity(self):
        return self.declaration.identity

    def to_dict(self):
        result = dict(kind=self.declaration.kind, id=self.identity)
        result.update(self.declaration.to_dict())
        return result

    def __repr__(self):
        return f"ReconciledGrant({self.declaration!r}, id={self.identity!r})"


class GrantReconciler(object):
    """
    Base reconciler for grants addressed by a single catalog row.

    Args:
        connection: Statement executor with execute(statement) and the
                    query methods CatalogReader needs (an ExasolHelper)
        module: The Ansible module, used for logging
        catalog: Optional CatalogReader, built from connection if omitted
    """

    kind = None

    def __init__(self, connection, module, catalog=None):
        self.connection = connection
        self.module = module
        self.catalog = catalog or CatalogReader(connection, module)

    def _check_kind(self, decl):
        if decl.kind != self.kind:
            raise ValidationError(
                f"{type(self).__name__} cannot reconcile a {decl.kind} declaration",
                field='kind',
                value=decl.kind,
            )

    def _execute(self, statements, applied):
        for statement in statements:
            self.connection.execute(statement)
            applied.append(statement)

    def _partial(self, error, decl, applied):
        """Turn an error that struck after some statements ran into PartialUpdateError"""
        if not applied:
            return error
        return PartialUpdateError(
            error.statement,
            f"Reconciling {decl.describe()} stopped after {len(applied)} applied "
            f"statement(s): {error.message}",
            error.code,
            applied=applied,
        )

    def create(self, decl):
        """Grant a declaration that is currently absent"""
        self._check_kind(decl)
        self.module.debug(f"Granting {decl.describe()}")
        applied = []
        try:
            self._execute(build_grant(decl), applied)
        except ExecutionError as e:
            raise self._partial(e, decl, applied)
        return ReconciledGrant(decl, applied)

    def read(self, decl):
        """
        Check a declaration against the catalog.

        Returns:
            ReconciledGrant or None: None means the grant is absent. The
            admin option is taken from the catalog only when the declaration
            expressed one; an unset admin option stays unset.
        """
        self._check_kind(decl)
        observed = self.catalog.exists(decl)
        if not observed.found:
            self.module.debug(f"Not found in catalog: {decl.describe()}")
            return None
        if decl.supports_admin_option and decl.admin_option is not None:
            decl = decl.replace(admin_option=observed.admin_option)
        return ReconciledGrant(decl)

    def _admin_option_changed(self, old, new):
        if not new.supports_admin_option or new.admin_option is None:
            return False
        return new.admin_option != bool(old.admin_option)

    def update(self, old, new):
        """
        Move a grant from its old declaration to a new one.

        Args:
            old: The declaration as last reconciled (or read)
            new: The desired declaration

        Raises:
            PartialUpdateError: if the revoke half ran but the grant half failed
        """
        self._check_kind(old)
        self._check_kind(new)
        if old.target() != new.target():
            self.module.debug(f"Replacing {old.describe()} with {new.describe()}")
            return self.move(old, new)
        if self._admin_option_changed(old, new):
            self.module.debug(f"Re-granting {new.describe()} to set admin option to {new.admin_option}")
            return self.move(old, new)
        return ReconciledGrant(new)

    def move(self, old, new):
        """
        Revoke the old declaration and grant the new one.

        Raises:
            PartialUpdateError: if the revoke ran but the grant failed
        """
        applied = []
        try:
            self._execute(build_revoke(old), applied)
            self._execute(build_grant(new), applied)
        except ExecutionError as e:
            raise self._partial(e, new, applied)
        return ReconciledGrant(new, applied)

    def delete(self, decl):
        """Revoke a declaration; errors propagate"""
        self._check_kind(decl)
        self.module.debug(f"Revoking {decl.describe()}")
        applied = []
        self._execute(build_revoke(decl), applied)
        return DeleteResult(applied, [])

    def ensure(self, decl):
        """
        Make the declaration hold (state=present).

        Returns:
            GrantOutcome: changed is True when any statement was issued
        """
        record = self.read(decl)
        if record is None:
            created = self.create(decl)
            return GrantOutcome(True, created, created.statements, [])
        if record.identity == decl.identity:
            self.module.debug(f"Already in place: {decl.describe()}")
            return GrantOutcome(False, record, [], [])
        updated = self.update(record.declaration, decl)
        return GrantOutcome(bool(updated.statements), updated, updated.statements, [])

    def ensure_replacing(self, old, decl):
        """
        Make the declaration hold, moving it from a previously persisted one.

        The old declaration is read first, so the update starts from what the
        catalog shows and also repairs drift. When the old grant is gone
        there is nothing to move and this is the same as ensure().
        """
        self._check_kind(old)
        record = self.read(old)
        if record is None:
            return self.ensure(decl)
        updated = self.update(record.declaration, decl)
        return GrantOutcome(bool(updated.statements), updated, updated.statements, [])

    def ensure_absent(self, decl):
        """
        Make sure the declaration does not hold (state=absent).

        Only what the catalog still shows is revoked.
        """
        record = self.read(decl)
        if record is None:
            return GrantOutcome(False, None, [], [])
        result = self.delete(record.declaration)
        return GrantOutcome(bool(result.applied), None, result.applied, result.failed)


class SystemPrivilegeReconciler(GrantReconciler):
    kind = SYSTEM_PRIVILEGE


class RoleGrantReconciler(GrantReconciler):
    kind = ROLE_GRANT


class ConnectionGrantReconciler(GrantReconciler):
    kind = CONNECTION_GRANT


class ObjectPrivilegeReconciler(GrantReconciler):
    """
    Reconciler for multi-privilege object grants.

    Each privilege is its own catalog row, so reads return the observed
    subset and updates work on set differences.
    """

    kind = OBJECT_PRIVILEGE

    def read(self, decl):
        self._check_kind(decl)
        observed = self.catalog.observed_privileges(decl)
        if not observed:
            self.module.debug(f"Not found in catalog: {decl.describe()}")
            return None
        if observed != decl.privileges:
            self.module.debug(
                f"Privileges drifted on {decl.object_type} {decl.object_name} for {decl.grantee}: "
                f"declared {PRIVILEGE_DELIMITER.join(decl.privileges)}, "
                f"found {PRIVILEGE_DELIMITER.join(observed)}"
            )
            decl = decl.replace(privileges=observed)
        return ReconciledGrant(decl)

    def is_rename(self, old, new):
        """
        True when only the object name differs.

        The server keeps grants attached to an object across a rename, so
        such an update has nothing to grant or revoke. Whether the object
        really was renamed is up to the caller, see ensure_replacing().
        """
        return (
            old.grantee == new.grantee
            and old.object_type == new.object_type
            and old.privileges == new.privileges
            and old.object_name != new.object_name
        )

    def ensure_replacing(self, old, decl):
        """
        Like GrantReconciler.ensure_replacing(), telling renames from moves.

        When the old grant is still in the catalog and only the object name
        changed, the grants have followed a renamed object only if the new
        name shows them as well. Otherwise the old object still exists and
        the grant is moved by revoking it there and granting it on the new
        object.
        """
        self._check_kind(old)
        record = self.read(old)
        if record is None or not self.is_rename(record.declaration, decl):
            return super(ObjectPrivilegeReconciler, self).ensure_replacing(old, decl)

        if self.read(decl) is not None:
            self.module.debug(
                f"{decl.object_type} {decl.object_name} already holds the grants of "
                f"{record.declaration.object_name}"
            )
            return self.ensure(decl)

        self.module.debug(
            f"{record.declaration.object_name} still holds {record.declaration.describe()}, "
            f"moving it to {decl.object_name}"
        )
        moved = self.move(record.declaration, decl)
        return GrantOutcome(bool(moved.statements), moved, moved.statements, [])

    def _revoke_best_effort(self, decl, applied, failed):
        for statement in build_revoke(decl):
            try:
                self.connection.execute(statement)
                applied.append(statement)
            except ExecutionError as e:
                self.module.warn(f"REVOKE failed (privilege may not exist): {e}")
                failed.append(e.statement)

    def update(self, old, new):
        self._check_kind(old)
        self._check_kind(new)

        if self.is_rename(old, new):
            self.module.debug(
                f"Rename of {old.object_type} {old.object_name} to {new.object_name} detected, "
                "grants follow the object"
            )
            return ReconciledGrant(new)

        if old.target() != new.target():
            self.module.debug(f"Replacing {old.describe()} with {new.describe()}")
            return self.move(old, new)

        applied = []
        removed = sorted(set(old.privileges) - set(new.privileges))
        added = sorted(set(new.privileges) - set(old.privileges))
        try:
            if removed:
                self.module.debug(f"Revoking removed privileges {removed} from {new.describe()}")
                self._execute(build_revoke(old, removed), applied)
            if added:
                self.module.debug(f"Granting added privileges {added} for {new.describe()}")
                self._execute(build_grant(new, added), applied)
        except ExecutionError as e:
            raise self._partial(e, new, applied)
        return ReconciledGrant(new, applied)

    def delete(self, decl):
        """
        Revoke every privilege of the declaration.

        A failing REVOKE is reported and skipped, since the privilege may
        already be gone; the remaining privileges are still revoked.
        """
        self._check_kind(decl)
        self.module.debug(f"Revoking {decl.describe()}")
        applied = []
        failed = []
        self._revoke_best_effort(decl, applied, failed)
        return DeleteResult(applied, failed)


RECONCILERS = {
    SYSTEM_PRIVILEGE: SystemPrivilegeReconciler,
    OBJECT_PRIVILEGE: ObjectPrivilegeReconciler,
    ROLE_GRANT: RoleGrantReconciler,
    CONNECTION_GRANT: ConnectionGrantReconciler,
}


def reconciler_for(kind, connection, module):
    if kind not in RECONCILERS:
        raise ValidationError(f"Unknown grant kind {kind!r}", field='kind', value=kind)
    return RECONCILERS[kind](connection, module)


def error_details(error, decl=None):
    """Build fail_json arguments with enough context to reproduce a failure"""
    details = dict(msg=str(error))
    if decl is not None:
        details['grant'] = decl.to_dict()
    if isinstance(error, ValidationError):
        details['field'] = error.field
    if isinstance(error, ExecutionError):
        details['statement'] = error.statement
        details['code'] = error.code
    if isinstance(error, PartialUpdateError):
        details['applied'] = error.applied
    return details


def run_grant_task(module, connection, decl, state='present', replaces=None):
    """
    Reconcile one declaration and build the module result.

    Args:
        module: The Ansible module
        connection: Statement executor (ExasolHelper)
        decl: The desired GrantDeclaration
        state: 'present' or 'absent'
        replaces: Identifier of a previous declaration this one supersedes

    Returns:
        dict: changed, id, grant, queries and failed_queries
    """
    reconciler = reconciler_for(decl.kind, connection, module)
    if state == 'absent':
        outcome = reconciler.ensure_absent(decl)
    elif replaces:
        outcome = reconciler.ensure_replacing(parse_identity(decl.kind, replaces), decl)
    else:
        outcome = reconciler.ensure(decl)

    record = outcome.record
    return dict(
        changed=outcome.changed,
        id=decl.identity,
        state=state,
        grant=record.to_dict() if record is not None else None,
        queries=list(outcome.queries),
        failed_queries=list(outcome.failed),
    )


def run_grant_module(module, connection, build_declaration):
    """
    Shared body of the grant modules.

    Args:
        module: The Ansible module
        connection: Statement executor (ExasolHelper), closed on return
        build_declaration: Callable turning module.params into a declaration

    Returns:
        dict: The result to pass to exit_json; failures end in fail_json
    """
    decl = None
    try:
        decl = build_declaration(module.params)
        return run_grant_task(
            module,
            connection,
            decl,
            state=module.params.get('state') or 'present',
            replaces=module.params.get('replaces'),
        )
    except ExasolGrantError as e:
        module.fail_json(queries=list(connection.queries), **error_details(e, decl))
    finally:
        connection.close()
