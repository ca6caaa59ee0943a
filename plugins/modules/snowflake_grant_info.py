#!/usr/bin/python
# -*- coding: utf-8 -*-
# pylint: disable=line-too-long, broad-exception-caught

# Copyright: (c) 2025, Cockroach Labs
# Apache License, Version 2.0 (see LICENSE or http://www.apache.org/licenses/LICENSE-2.0)

"""
Ansible module for reading the current state of a Snowflake grant.

Decodes a grant ID, runs SHOW GRANTS on the granted object and reports which
of the recorded roles still hold the privilege. Nothing is changed.
"""

import traceback
from ansible.module_utils.basic import AnsibleModule, missing_required_lib
from ansible.module_utils.common.text.converters import to_native
from ansible_collections.rpunt.snowflake.plugins.module_utils.errors import GrantError
from ansible_collections.rpunt.snowflake.plugins.module_utils.generic_grant import read_generic_grant
from ansible_collections.rpunt.snowflake.plugins.module_utils.grant_builders import GRANT_KINDS
from ansible_collections.rpunt.snowflake.plugins.module_utils.grant_module import grant_record_to_dict
from ansible_collections.rpunt.snowflake.plugins.module_utils.snowflake import (
    SnowflakeHelper,
    HAS_SNOWFLAKE_CONNECTOR,
    SNOWFLAKE_IMP_ERR,
    snowflake_common_argument_spec,
)

ANSIBLE_METADATA = {
    "metadata_version": "1.1",
    "status": ["preview"],
    "supported_by": "community",
}

DOCUMENTATION = r"""
---
module: snowflake_grant_info
short_description: Read the state of a Snowflake grant from its grant ID
description:
  - Decode a grant ID returned by one of the snowflake_*_grant modules
  - Report the roles that still hold the privilege according to SHOW GRANTS
  - Roles recorded in the grant ID but no longer granted are left out
options:
  kind:
    description:
      - Kind of object the grant is on
    required: true
    choices: ["resource_monitor", "warehouse", "database", "schema", "integration"]
    type: str
  grant_id:
    description:
      - Grant ID to read
    required: true
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
      - Role used for the session
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
- name: Check which roles still hold a resource monitor grant
  rpunt.snowflake.snowflake_grant_info:
    kind: resource_monitor
    grant_id: "WH_MONITOR|MONITOR|false|ANALYST"
  register: monitor_grant
"""

RETURN = r"""
exists:
  description: False when the granted object no longer exists
  returned: always
  type: bool
  sample: true
grant:
  description: Grant state read from Snowflake; null when the object does not exist
  returned: always
  type: dict
  sample: {
    "resource_name": "WH_MONITOR",
    "privilege": "MONITOR",
    "roles": ["ANALYST"],
    "with_grant_option": false
  }
"""


def main():
    """
    Main entry point for the grant info module.

    Reads the grant identified by grant_id and returns its current state
    without running any GRANT or REVOKE statement.
    """
    argument_spec = dict(
        kind=dict(type="str", required=True, choices=sorted(GRANT_KINDS)),
        grant_id=dict(type="str", required=True),
    )
    argument_spec.update(snowflake_common_argument_spec())

    module = AnsibleModule(
        argument_spec=argument_spec,
        supports_check_mode=True,
    )

    if not HAS_SNOWFLAKE_CONNECTOR:
        module.fail_json(msg=missing_required_lib("snowflake-connector-python"), exception=SNOWFLAKE_IMP_ERR)

    kind = GRANT_KINDS[module.params["kind"]]
    helper = SnowflakeHelper(module)

    try:
        record = read_generic_grant(module, helper, kind, module.params["grant_id"])
    except GrantError as e:
        module.fail_json(msg=f"Error reading {kind.name} grant: {to_native(e)}")
    except Exception as e:
        module.fail_json(msg=f"Unexpected error reading {kind.name} grant: {to_native(e)}",
                         exception=traceback.format_exc())
    finally:
        helper.close()

    module.exit_json(changed=False, exists=record is not None, grant=grant_record_to_dict(record))


if __name__ == "__main__":
    main()
