#!/usr/bin/python
# -*- coding: utf-8 -*-
# pylint: disable=line-too-long

# Copyright: (c) 2025, rpunt.exasol contributors
# Apache License, Version 2.0 (see LICENSE or http://www.apache.org/licenses/LICENSE-2.0)

"""
Ansible module for managing Exasol object privileges.

Object privileges are granted on schemas, tables, views, scripts and
functions. One task manages a list of privileges for one grantee on one
object; the list is treated as a set, so its order never matters.

Reads check every declared privilege on its own. When some of them were
revoked outside Ansible only the missing ones are granted again, and when a
task passes `replaces` and drops a privilege from the list only that
privilege is revoked.
'ALL' is considered in place when the catalog shows either a literal ALL
row or the individual privileges the server expanded it into.
"""

from __future__ import absolute_import, division, print_function
__metaclass__ = type

from ansible.module_utils.basic import AnsibleModule
from ..module_utils.exasol import ExasolHelper, exasol_common_argument_spec
from ..module_utils.exasol_grants import ObjectPrivilegeGrant
from ..module_utils.exasol_reconciler import run_grant_module

ANSIBLE_METADATA = {
    "metadata_version": "1.1",
    "status": ["preview"],
    "supported_by": "community",
}

DOCUMENTATION = r"""
---
module: exasol_object_privilege
short_description: Grant or revoke Exasol object privileges
description:
  - Grant privileges such as SELECT, INSERT, USAGE or ALL on a schema, table, view, script or function
  - Reads C(EXA_DBA_OBJ_PRIVS) first, so repeated runs report no change
  - Privileges revoked outside Ansible are granted again without touching the others
options:
  grantee:
    description:
      - User or role receiving the privileges
    required: true
    type: str
  privileges:
    description:
      - List of privileges, for example SELECT, INSERT, UPDATE, DELETE, USAGE, CREATE TABLE, ALTER, DROP or ALL
      - Order and case do not matter
    required: true
    type: list
    elements: str
  object_type:
    description:
      - Type of the object, for example SCHEMA, TABLE, VIEW, SCRIPT or FUNCTION
    required: true
    type: str
  object_name:
    description:
      - Object name, C(MYSCHEMA) for a schema or C(MYSCHEMA.MYTABLE) for objects inside one
    required: true
    type: str
  state:
    description:
      - Whether the privileges should be granted or revoked
    default: present
    choices: ["present", "absent"]
    type: str
  replaces:
    description:
      - The C(id) returned by an earlier run for a grant this task supersedes
      - Format C(GRANTEE|PRIVILEGE1,PRIVILEGE2|OBJECT_TYPE|OBJECT_NAME)
      - When only the object name differs and the new object already shows the grants, the object is taken as renamed and no statement is issued; otherwise the grants are revoked on the old object and granted on the new one
    type: str
  host:
    description:
      - Database host address
    default: localhost
    type: str
  port:
    description:
      - Database port number
    default: 8563
    type: int
  login_user:
    description:
      - Database user to connect as
    default: sys
    type: str
    aliases: ["user"]
  login_password:
    description:
      - Password of O(login_user), or a personal access token starting with C(exa_pat_)
    type: str
    aliases: ["password"]
  validate_server_certificate:
    description:
      - Validate the server's TLS certificate
    default: true
    type: bool
  encryption:
    description:
      - Encrypt the connection
    default: true
    type: bool
  connect_timeout:
    description:
      - Database connection timeout in seconds
    default: 30
    type: int
  collision_retries:
    description:
      - How many times a GRANT or REVOKE is retried after a transaction collision
    default: 5
    type: int
  collision_backoff:
    description:
      - Seconds to wait before the first retry, doubled for every further retry
    default: 0.5
    type: float
requirements:
  - pyexasol
author:
  - "Ryan Punt (@rpunt)"
"""

EXAMPLES = r"""
- name: Let the reporting role read the sales schema
  rpunt.exasol.exasol_object_privilege:
    grantee: reporting
    privileges:
      - USAGE
      - SELECT
    object_type: SCHEMA
    object_name: sales
    host: exasol.example.com
    login_password: "{{ exasol_password }}"
  register: sales_grant

- name: Follow the schema after it was renamed
  rpunt.exasol.exasol_object_privilege:
    grantee: reporting
    privileges: [USAGE, SELECT]
    object_type: SCHEMA
    object_name: sales_archive
    replaces: "{{ sales_grant.id }}"

- name: Grant everything on a table
  rpunt.exasol.exasol_object_privilege:
    grantee: etl_user
    privileges: [ALL]
    object_type: TABLE
    object_name: staging.orders

- name: Revoke table privileges
  rpunt.exasol.exasol_object_privilege:
    grantee: etl_user
    privileges: [INSERT, DELETE]
    object_type: TABLE
    object_name: staging.orders
    state: absent
"""

RETURN = r"""
changed:
  description: Whether any GRANT or REVOKE was issued
  returned: always
  type: bool
  sample: true
id:
  description: Identifier of the declared grant, privileges sorted
  returned: success
  type: str
  sample: "REPORTING|SELECT,USAGE|SCHEMA|SALES"
grant:
  description: The grant as reconciled, null after state=absent
  returned: success
  type: dict
  sample: {"kind": "object_privilege", "id": "REPORTING|SELECT,USAGE|SCHEMA|SALES", "grantee": "REPORTING", "privileges": ["SELECT", "USAGE"], "object_type": "SCHEMA", "object_name": "SALES"}
queries:
  description: Statements executed, or that would be executed in check mode
  returned: always
  type: list
  sample: ['GRANT SELECT ON SCHEMA "SALES" TO "REPORTING"', 'GRANT USAGE ON SCHEMA "SALES" TO "REPORTING"']
failed_queries:
  description: REVOKE statements that failed and were skipped, the privilege may already have been gone
  returned: always
  type: list
  sample: []
"""


def argument_spec():
    module_args = exasol_common_argument_spec()
    module_args.update(
        grantee=dict(type='str', required=True),
        privileges=dict(type='list', elements='str', required=True),
        object_type=dict(type='str', required=True),
        object_name=dict(type='str', required=True),
        state=dict(type='str', default='present', choices=['present', 'absent']),
        replaces=dict(type='str'),
    )
    return module_args


def build_declaration(params):
    return ObjectPrivilegeGrant(
        params['grantee'],
        params['privileges'],
        params['object_type'],
        params['object_name'],
    )


def main():
    module = AnsibleModule(
        argument_spec=argument_spec(),
        supports_check_mode=True
    )

    db = ExasolHelper(module)
    result = run_grant_module(module, db, build_declaration)
    module.exit_json(**result)


if __name__ == '__main__':
    main()
