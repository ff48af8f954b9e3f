#!/usr/bin/python
# -*- coding: utf-8 -*-
# pylint: disable=line-too-long

# Copyright: (c) 2025, rpunt.exasol contributors
# Apache License, Version 2.0 (see LICENSE or http://www.apache.org/licenses/LICENSE-2.0)

"""
Ansible module for granting access to Exasol connection objects.

Connection grants are tracked in EXA_DBA_CONNECTION_PRIVS, not in the
object privilege view, and have no admin option.
"""

from __future__ import absolute_import, division, print_function
__metaclass__ = type

from ansible.module_utils.basic import AnsibleModule
from ..module_utils.exasol import ExasolHelper, exasol_common_argument_spec
from ..module_utils.exasol_grants import ConnectionGrant
from ..module_utils.exasol_reconciler import run_grant_module

ANSIBLE_METADATA = {
    "metadata_version": "1.1",
    "status": ["preview"],
    "supported_by": "community",
}

DOCUMENTATION = r"""
---
module: exasol_connection_grant
short_description: Grant or revoke access to an Exasol connection
description:
  - Grant a user or role access to a connection object created with CREATE CONNECTION, or revoke it
  - Reads C(EXA_DBA_CONNECTION_PRIVS) first, so repeated runs report no change
options:
  connection_name:
    description:
      - Name of the connection object
    required: true
    type: str
  grantee:
    description:
      - User or role receiving access
    required: true
    type: str
  state:
    description:
      - Whether access should be granted or revoked
    default: present
    choices: ["present", "absent"]
    type: str
  replaces:
    description:
      - The C(id) returned by an earlier run for a grant this task supersedes
      - Format C(CONNECTION_NAME|GRANTEE)
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
- name: Let the loader use the S3 connection
  rpunt.exasol.exasol_connection_grant:
    connection_name: s3_landing
    grantee: loader_role
    host: exasol.example.com
    login_password: "{{ exasol_password }}"

- name: Revoke access
  rpunt.exasol.exasol_connection_grant:
    connection_name: s3_landing
    grantee: old_loader
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
  sample: "S3_LANDING|LOADER_ROLE"
grant:
  description: The grant as reconciled, null after state=absent
  returned: success
  type: dict
  sample: {"kind": "connection_grant", "id": "S3_LANDING|LOADER_ROLE", "connection_name": "S3_LANDING", "grantee": "LOADER_ROLE"}
queries:
  description: Statements executed, or that would be executed in check mode
  returned: always
  type: list
  sample: ['GRANT CONNECTION "S3_LANDING" TO "LOADER_ROLE"']
"""


def argument_spec():
    module_args = exasol_common_argument_spec()
    module_args.update(
        connection_name=dict(type='str', required=True),
        grantee=dict(type='str', required=True),
        state=dict(type='str', default='present', choices=['present', 'absent']),
        replaces=dict(type='str'),
    )
    return module_args


def build_declaration(params):
    return ConnectionGrant(params['connection_name'], params['grantee'])


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
