#!/usr/bin/python
# -*- coding: utf-8 -*-
# pylint: disable=line-too-long

# Copyright: (c) 2025, rpunt.exasol contributors
# Apache License, Version 2.0 (see LICENSE or http://www.apache.org/licenses/LICENSE-2.0)

"""
Ansible module for managing Exasol system privileges.

System privileges are database-wide capabilities such as CREATE SESSION,
CREATE TABLE or USE ANY SCHEMA. The module grants or revokes a single system
privilege for a user or role and keeps the ADMIN OPTION in line with the
task when the task sets one.
"""

from __future__ import absolute_import, division, print_function
__metaclass__ = type

from ansible.module_utils.basic import AnsibleModule
from ..module_utils.exasol import ExasolHelper, exasol_common_argument_spec
from ..module_utils.exasol_grants import SystemPrivilegeGrant
from ..module_utils.exasol_reconciler import run_grant_module

ANSIBLE_METADATA = {
    "metadata_version": "1.1",
    "status": ["preview"],
    "supported_by": "community",
}

DOCUMENTATION = r"""
---
module: exasol_system_privilege
short_description: Grant or revoke Exasol system privileges
description:
  - Grant a system privilege such as C(CREATE SESSION) to a user or role, or revoke it
  - Reads C(EXA_DBA_SYS_PRIVS) first, so repeated runs report no change
  - When O(with_admin_option) is omitted the admin option is left as the database has it
options:
  grantee:
    description:
      - User or role receiving the privilege
      - Case-insensitive, stored uppercase
    required: true
    type: str
  privilege:
    description:
      - System privilege name, for example C(CREATE SESSION), C(CREATE TABLE) or C(USE ANY SCHEMA)
    required: true
    type: str
  with_admin_option:
    description:
      - Grant the privilege WITH ADMIN OPTION so the grantee can grant it to others
      - Leave unset to accept whatever the database currently has
    type: bool
  state:
    description:
      - Whether the privilege should be granted or revoked
    default: present
    choices: ["present", "absent"]
    type: str
  replaces:
    description:
      - The C(id) returned by an earlier run for a grant this task supersedes
      - The old grant is revoked and the new one granted, in format C(GRANTEE|PRIVILEGE|ADMIN_OPTION)
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
- name: Allow the analyst role to log in
  rpunt.exasol.exasol_system_privilege:
    grantee: analyst_role
    privilege: CREATE SESSION
    host: exasol.example.com
    login_user: sys
    login_password: "{{ exasol_password }}"

- name: Let the admin role hand out CREATE SCHEMA
  rpunt.exasol.exasol_system_privilege:
    grantee: admin_role
    privilege: CREATE SCHEMA
    with_admin_option: true

- name: Revoke USE ANY SCHEMA
  rpunt.exasol.exasol_system_privilege:
    grantee: analyst_role
    privilege: USE ANY SCHEMA
    state: absent
"""

RETURN = r"""
changed:
  description: Whether any GRANT or REVOKE was issued
  returned: always
  type: bool
  sample: true
id:
  description: Identifier of the declared grant
  returned: success
  type: str
  sample: "ANALYST_ROLE|CREATE SESSION|false"
grant:
  description: The grant as reconciled, null after state=absent
  returned: success
  type: dict
  sample: {"kind": "system_privilege", "id": "ANALYST_ROLE|CREATE SESSION|false", "grantee": "ANALYST_ROLE", "privilege": "CREATE SESSION", "with_admin_option": null}
queries:
  description: Statements executed, or that would be executed in check mode
  returned: always
  type: list
  sample: ['GRANT CREATE SESSION TO "ANALYST_ROLE"']
"""


def argument_spec():
    module_args = exasol_common_argument_spec()
    module_args.update(
        grantee=dict(type='str', required=True),
        privilege=dict(type='str', required=True),
        with_admin_option=dict(type='bool'),
        state=dict(type='str', default='present', choices=['present', 'absent']),
        replaces=dict(type='str'),
    )
    return module_args


def build_declaration(params):
    return SystemPrivilegeGrant(
        params['grantee'],
        params['privilege'],
        params.get('with_admin_option'),
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
