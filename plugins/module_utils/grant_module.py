#!/usr/bin/python
# -*- coding: utf-8 -*-

# Copyright: (c) 2025, Cockroach Labs
# Apache License, Version 2.0 (see LICENSE or http://www.apache.org/licenses/LICENSE-2.0)

"""
Shared present/absent workflow for the per-kind grant modules.
"""

from __future__ import absolute_import, division, print_function
__metaclass__ = type

import traceback
from ansible.module_utils.basic import missing_required_lib
from ansible.module_utils.common.text.converters import to_native

from ansible_collections.rpunt.snowflake.plugins.module_utils.errors import GrantError
from ansible_collections.rpunt.snowflake.plugins.module_utils.generic_grant import (
    create_generic_grant,
    delete_generic_grant,
    read_generic_grant,
    validate_privilege,
)
from ansible_collections.rpunt.snowflake.plugins.module_utils.grant_id import GrantIdentity
from ansible_collections.rpunt.snowflake.plugins.module_utils.snowflake import (
    SnowflakeHelper,
    HAS_SNOWFLAKE_CONNECTOR,
    SNOWFLAKE_IMP_ERR,
)


def grant_record_to_dict(record):
    """Module return value for a GrantRecord (None stays None)"""
    if record is None:
        return None
    return dict(
        resource_name=record.resource_name,
        privilege=record.privilege,
        roles=list(record.roles),
        with_grant_option=record.grant_option,
    )


def desired_identity(module, kind, resource_name):
    """
    Build the requested GrantIdentity from module parameters.

    A ``grant_id`` parameter takes precedence over the name, privilege and
    role options. Validation happens here, before any connection is made.
    """
    grant_id = module.params.get('grant_id')
    if grant_id:
        identity = GrantIdentity.from_string(grant_id)
    else:
        roles = module.params.get('roles') or []
        if not roles:
            raise GrantError("roles must contain at least one role when grant_id is not given")
        identity = GrantIdentity(
            resource_name,
            module.params.get('privilege') or kind.default_privilege,
            bool(module.params.get('with_grant_option')),
            roles,
        )
    privilege = validate_privilege(kind, identity.privilege)
    return identity._replace(privilege=privilege)


def roles_to_grant(kind, identity, record):
    """
    Declared roles that do not hold the grant yet.

    The grant option only converges upwards: a role that already holds it is
    left alone when it is not requested.
    """
    missing = [role for role in identity.roles if role not in record.roles]
    if identity.grant_option and kind.verify_grant_option and not record.grant_option:
        # Re-granting WITH GRANT OPTION is harmless for roles that already have it
        missing = list(identity.roles)
    return missing


def manage_grant(module, helper, kind, identity, state):
    """
    Bring one grant to ``state`` ('present' or 'absent').

    Returns:
        dict: module result with changed, queries, grant_id and grant
    """
    grant_id = identity.to_string()
    result = dict(changed=False, queries=[], grant_id=grant_id, grant=None)

    record = read_generic_grant(module, helper, kind, grant_id)
    builder = kind.builder(identity.resource_name)

    if state == 'present':
        if record is None:
            raise GrantError(f"{kind.object_type} {identity.resource_name} does not exist")

        missing = roles_to_grant(kind, identity, record)
        if missing:
            result['changed'] = True
            result['queries'] = [builder.grant(identity.privilege, role, identity.grant_option) for role in missing]
            if not module.check_mode:
                create_generic_grant(module, helper, kind, identity.resource_name,
                                     identity.privilege, missing, identity.grant_option)
                record = read_generic_grant(module, helper, kind, grant_id)
        else:
            module.debug("No changes needed - grant is already in place")

    else:
        if record is None:
            module.debug(f"{kind.object_type} {identity.resource_name} does not exist - nothing to revoke")
            return result

        # Only roles named by the grant; an ID without roles revokes nothing
        holding = [role for role in identity.roles if role in record.roles]
        if holding:
            result['changed'] = True
            result['queries'] = [builder.revoke(identity.privilege, role) for role in holding]
            if not module.check_mode:
                result['queries'] = delete_generic_grant(module, helper, kind, grant_id, roles=holding)
                record = read_generic_grant(module, helper, kind, grant_id)
        else:
            module.debug("No changes needed - grant is already absent")

    result['grant'] = grant_record_to_dict(record)
    return result


def run_grant_module(module, kind, resource_name):
    """
    Entry point shared by the snowflake_*_grant modules.

    Exits the module with the result of manage_grant, or fails it with the
    error that stopped the run.
    """
    if not HAS_SNOWFLAKE_CONNECTOR:
        module.fail_json(msg=missing_required_lib("snowflake-connector-python"), exception=SNOWFLAKE_IMP_ERR)

    try:
        identity = desired_identity(module, kind, resource_name)
    except GrantError as e:
        module.fail_json(msg=to_native(e))

    helper = SnowflakeHelper(module)
    try:
        result = manage_grant(module, helper, kind, identity, module.params['state'])
    except GrantError as e:
        module.fail_json(msg=f"Error managing {kind.name} grant: {to_native(e)}",
                         exception=traceback.format_exc())
    except Exception as e:
        module.fail_json(msg=f"Unexpected error managing {kind.name} grant: {to_native(e)}",
                         exception=traceback.format_exc())
    finally:
        helper.close()

    module.exit_json(**result)
