#!/usr/bin/python
# -*- coding: utf-8 -*-
# pylint: disable=line-too-long

# Copyright: (c) 2025, rpunt.exasol contributors
# Apache License, Version 2.0 (see LICENSE or http://www.apache.org/licenses/LICENSE-2.0)

"""
Ansible module for granting Exasol roles to users and other roles.

This is role membership, distinct from system and object privileges.
"""

from __future__ import absolute_import, division, print_function
__metaclass__ = type

from ansible.module_utils.basic import AnsibleModule
from ..module_utils.exasol import ExasolHelper, exasol_common_argument_spec
from ..module_utils.exasol_grants import RoleGrant
from ..module_utils.exasol_reconciler import run_grant_module

ANSIBLE_METADATA = {
    "metadata_version": "1.1",
    "status": ["preview"],
    "supported_by": "community",
}

DOCUMENTATION = r"""
---
module: exasol_role_grant
short_description: Grant or revoke Exasol role membership
description:
  - Grant a role to a user or another role, or revoke it
  - Reads C(EXA_DBA_ROLE_PRIVS) first, so repeated runs report no change
  - When O(with_admin_option) is omitted the admin option is left as the database has it
options:
  role:
    description:
      - Role to grant
    required: true
    type: str
  grantee:
    description:
      - User or role receiving the role
    required: true
    type: str
  with_admin_option:
    description:
      - Grant the role WITH ADMIN OPTION so the grantee can grant it to others
      - Leave unset to accept whatever the database currently has
    type: bool
  state:
    description:
      - Whether the role should be granted or revoked
    default: present
    choices: ["present", "absent"]
    type: str
  replaces:
    description:
      - The C(id) returned by an earlier run for a grant this task supersedes
      - Format C(ROLE|GRANTEE|ADMIN_OPTION)
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
- name: Make alice an analyst
  rpunt.exasol.exasol_role_grant:
    role: analyst_role
    grantee: alice
    host: exasol.example.com
    login_password: "{{ exasol_password }}"

- name: Let team leads hand out the analyst role
  rpunt.exasol.exasol_role_grant:
    role: analyst_role
    grantee: team_lead
    with_admin_option: true

- name: Remove bob from the analysts
  rpunt.exasol.exasol_role_grant:
    role: analyst_role
    grantee: bob
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
  sample: "ANALYST_ROLE|ALICE|false"
grant:
  description: The grant as reconciled, null after state=absent
  returned: success
  type: dict
  sample: {"kind": "role_grant", "id": "ANALYST_ROLE|ALICE|false", "role": "ANALYST_ROLE", "grantee": "ALICE", "with_admin_option": null}
queries:
  description: Statements executed, or that would be executed in check mode
  returned: always
  type: list
  sample: ['GRANT "ANALYST_ROLE" TO "ALICE"']
"""


def argument_spec():
    module_args = exasol_common_argument_spec()
    module_args.update(
        role=dict(type='str', required=True),
        grantee=dict(type='str', required=True),
        with_admin_option=dict(type='bool'),
        state=dict(type='str', default='present', choices=['present', 'absent']),
        replaces=dict(type='str'),
    )
    return module_args


def build_declaration(params):
    return RoleGrant(
        params['role'],
        params['grantee'],
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
