#!/usr/bin/python
# -*- coding: utf-8 -*-
# pylint: disable=line-too-long

# Copyright: (c) 2025, rpunt.exasol contributors
# Apache License, Version 2.0 (see LICENSE or http://www.apache.org/licenses/LICENSE-2.0)

"""
Ansible module for reading the grants Exasol users and roles hold.

Read-only: it queries the privilege catalog views and reports every grant
in the same shape the grant modules return, including the `id` a later
task can pass as `replaces`.
"""

from __future__ import absolute_import, division, print_function
__metaclass__ = type

from ansible.module_utils.basic import AnsibleModule
from ..module_utils.exasol import ExasolHelper, exasol_common_argument_spec
from ..module_utils.exasol_catalog import CatalogReader
from ..module_utils.exasol_errors import ExasolGrantError
from ..module_utils.exasol_grants import GRANT_KINDS
from ..module_utils.exasol_identifiers import validate_identifier
from ..module_utils.exasol_reconciler import ReconciledGrant, error_details

ANSIBLE_METADATA = {
    "metadata_version": "1.1",
    "status": ["preview"],
    "supported_by": "community",
}

DOCUMENTATION = r"""
---
module: exasol_grant_info
short_description: Gather the grants held by Exasol users and roles
description:
  - Lists system privileges, object privileges, role grants and connection grants per grantee
  - Never changes the database, so it runs the same in check mode
options:
  grantees:
    description:
      - Users or roles to report on
    required: true
    type: list
    elements: str
  kinds:
    description:
      - Grant kinds to include
    default: ["system_privilege", "object_privilege", "role_grant", "connection_grant"]
    choices: ["system_privilege", "object_privilege", "role_grant", "connection_grant"]
    type: list
    elements: str
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
- name: Show what the analysts can do
  rpunt.exasol.exasol_grant_info:
    grantees:
      - analyst_role
      - alice
    host: exasol.example.com
    login_password: "{{ exasol_password }}"
  register: grants

- name: Only role memberships
  rpunt.exasol.exasol_grant_info:
    grantees: [alice]
    kinds: [role_grant]
"""

RETURN = r"""
grants:
  description: Grants per grantee, then per kind
  returned: always
  type: dict
  sample: {
    "ALICE": {
      "role_grant": [
        {"kind": "role_grant", "id": "ANALYST_ROLE|ALICE|false", "role": "ANALYST_ROLE", "grantee": "ALICE", "with_admin_option": false}
      ]
    }
  }
"""


def gather_grants(module, db, grantees, kinds):
    """
    Collect grants for every grantee.

    Returns:
        dict: grantee -> kind -> list of grant dicts
    """
    catalog = CatalogReader(db, module)
    result = {}
    for grantee in grantees:
        grantee = validate_identifier(grantee, 'grantee')
        found = catalog.list_grants(grantee)
        result[grantee] = {
            kind: [ReconciledGrant(decl).to_dict() for decl in found[kind]]
            for kind in kinds
        }
    return result


def main():
    module_args = exasol_common_argument_spec()
    module_args.update(
        grantees=dict(type='list', elements='str', required=True),
        kinds=dict(type='list', elements='str', default=list(GRANT_KINDS), choices=list(GRANT_KINDS)),
    )

    module = AnsibleModule(
        argument_spec=module_args,
        supports_check_mode=True,
    )

    db = ExasolHelper(module)
    grants = {}

    try:
        grants = gather_grants(module, db, module.params['grantees'], module.params['kinds'])
    except ExasolGrantError as e:
        module.fail_json(**error_details(e))
    finally:
        db.close()

    module.exit_json(changed=False, grants=grants)


if __name__ == '__main__':
    main()
