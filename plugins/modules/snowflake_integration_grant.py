#!/usr/bin/python
# -*- coding: utf-8 -*-
# pylint: disable=line-too-long, broad-exception-caught

# Copyright: (c) 2025, Cockroach Labs
# Apache License, Version 2.0 (see LICENSE or http://www.apache.org/licenses/LICENSE-2.0)

"""
Ansible module for managing privilege grants on Snowflake integrations.

A grant is identified by a grant ID string that encodes the integration name,
the privilege, the grant option and the roles. The grant ID is returned on
every run so it can be stored and passed back later.
"""

from ansible.module_utils.basic import AnsibleModule
from ansible_collections.rpunt.snowflake.plugins.module_utils.grant_builders import INTEGRATION
from ansible_collections.rpunt.snowflake.plugins.module_utils.grant_module import run_grant_module
from ansible_collections.rpunt.snowflake.plugins.module_utils.snowflake import snowflake_common_argument_spec

ANSIBLE_METADATA = {
    "metadata_version": "1.1",
    "status": ["preview"],
    "supported_by": "community",
}

DOCUMENTATION = r"""
---
module: snowflake_integration_grant
short_description: Manage privilege grants on Snowflake integrations
description:
  - Grant or revoke a privilege on an integration for a set of roles
  - Reads the current grants with SHOW GRANTS before changing anything
  - Returns a grant ID that identifies the grant on later runs
options:
  integration_name:
    description:
      - Name of the integration
      - Mutually exclusive with I(grant_id)
    type: str
  privilege:
    description:
      - The privilege to grant on the integration
      - One of C(ALL), C(OWNERSHIP) or C(USAGE), matched without regard to case
      - Defaults to C(USAGE)
    type: str
  roles:
    description:
      - Roles the privilege is granted to or revoked from
      - Required unless I(grant_id) is given
    type: list
    elements: str
  with_grant_option:
    description:
      - Allow the roles to grant the privilege to other roles
      - Integration grants do not re-read this flag from Snowflake
    type: bool
    default: false
  grant_id:
    description:
      - Grant ID returned by an earlier run
      - Supplies the integration name, privilege, grant option and roles
    type: str
  state:
    description:
      - Whether the grant should exist
    choices: ["present", "absent"]
    default: present
    type: str
  account:
    description:
      - Snowflake account identifier
      - Falls back to the SNOWFLAKE_ACCOUNT environment variable
    required: true
    type: str
  user:
    description:
      - Login name used to connect
      - Falls back to the SNOWFLAKE_USER environment variable
    required: true
    type: str
  password:
    description:
      - Password for I(user)
    type: str
  private_key_path:
    description:
      - Path to a private key file for key-pair authentication
    type: path
  authenticator:
    description:
      - Authenticator passed to the connector, for example C(externalbrowser)
    type: str
  login_role:
    description:
      - Role used for the session; it needs MANAGE GRANTS or ownership of the integration
    type: str
  warehouse:
    description:
      - Warehouse used for the session
    type: str
  connect_timeout:
    description:
      - Login timeout in seconds
    default: 30
    type: int
requirements:
  - snowflake-connector-python
author:
  - "Ryan Punt (@rpunt)"
"""

EXAMPLES = r"""
- name: Allow analysts to use S3_INT
  rpunt.snowflake.snowflake_integration_grant:
    integration_name: S3_INT
    privilege: USAGE
    roles:
      - ANALYST
  register: grant_result

- name: Revoke the grant using its stored grant ID
  rpunt.snowflake.snowflake_integration_grant:
    grant_id: "{{ grant_result.grant_id }}"
    state: absent
"""

RETURN = r"""
changed:
  description: Whether any GRANT or REVOKE statement was needed
  returned: always
  type: bool
  sample: true
grant_id:
  description: Grant ID for the requested grant
  returned: always
  type: str
  sample: "S3_INT|USAGE|false|ANALYST"
queries:
  description: Statements executed (or that would be executed in check mode)
  returned: always
  type: list
  sample: ['GRANT USAGE ON INTEGRATION "S3_INT" TO ROLE "ANALYST"']
grant:
  description: Grant state read back from Snowflake; null when the integration does not exist
  returned: always
  type: dict
  sample: {
    "resource_name": "S3_INT",
    "privilege": "USAGE",
    "roles": ["ANALYST"],
    "with_grant_option": false
  }
"""


def main():
    """
    Main entry point for the integration grant module.

    Validates the requested privilege, reads the integration's current grants and
    grants or revokes the privilege for the roles that need it.
    """
    argument_spec = dict(
        integration_name=dict(type="str"),
        privilege=dict(type="str"),
        roles=dict(type="list", elements="str"),
        with_grant_option=dict(type="bool", default=False),
        grant_id=dict(type="str"),
        state=dict(type="str", default="present", choices=["present", "absent"]),
    )
    argument_spec.update(snowflake_common_argument_spec())

    module = AnsibleModule(
        argument_spec=argument_spec,
        supports_check_mode=True,
        required_one_of=[["integration_name", "grant_id"]],
        mutually_exclusive=[
            ["integration_name", "grant_id"],
            ["privilege", "grant_id"],
            ["roles", "grant_id"],
        ],
    )

    run_grant_module(module, INTEGRATION, module.params["integration_name"])


if __name__ == "__main__":
    main()
