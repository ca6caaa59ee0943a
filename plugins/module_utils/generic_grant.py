#!/usr/bin/python
# -*- coding: utf-8 -*-

# Copyright: (c) 2025, Cockroach Labs
# Apache License, Version 2.0 (see LICENSE or http://www.apache.org/licenses/LICENSE-2.0)

"""
Create, read and delete grants on any resource kind.

The functions here only know about a GrantKind (privilege set plus statement
builder) and a helper exposing ``execute_query``. Remote state is
authoritative: a read reports the roles that actually hold the privilege and
never re-grants roles that have gone missing.
"""

from __future__ import absolute_import, division, print_function
__metaclass__ = type

from collections import namedtuple

from ansible_collections.rpunt.snowflake.plugins.module_utils.errors import (
    EncodingError,
    GrantError,
    InvalidPrivilegeError,
    RemoteExecutionError,
)
from ansible_collections.rpunt.snowflake.plugins.module_utils.grant_id import GrantIdentity
from ansible_collections.rpunt.snowflake.plugins.module_utils.privilege_set import PRIVILEGE_ALL

GrantRecord = namedtuple("GrantRecord", ["resource_name", "privilege", "roles", "grant_option"])

GRANTEE_TYPE_ROLE = "ROLE"


def validate_privilege(kind, privilege):
    """Return the kind's spelling of ``privilege`` or raise InvalidPrivilegeError"""
    canonical = kind.privileges.canonical(privilege)
    if canonical is None:
        raise InvalidPrivilegeError(privilege, kind.name, kind.privileges.to_list())
    return canonical


def _builder_for(kind, resource_name):
    try:
        return kind.builder(resource_name)
    except ValueError as e:
        raise GrantError("Invalid %s name %r: %s" % (kind.name, resource_name, e))


def _unique(items):
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def _is_true(value):
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("true", "yes", "t", "y")


def is_wildcard_privilege(kind, privilege):
    """True when ``privilege`` is the kind's ALL sentinel"""
    return privilege.upper() == PRIVILEGE_ALL and PRIVILEGE_ALL in kind.privileges


def remote_role_grants(rows, privilege, wildcard=False):
    """
    Collect the roles holding ``privilege`` from SHOW GRANTS rows.

    Returns a dict mapping role name to whether every matching row for that
    role carries the grant option. With ``wildcard`` every row counts
    regardless of its privilege.
    """
    roles = {}
    for row in rows or []:
        grantee_type = (row.get("granted_to") or GRANTEE_TYPE_ROLE).upper()
        if grantee_type != GRANTEE_TYPE_ROLE:
            continue
        grantee = row.get("grantee_name")
        if not grantee:
            continue
        if not wildcard and (row.get("privilege") or "").upper() != privilege.upper():
            continue
        grant_option = _is_true(row.get("grant_option"))
        roles[grantee] = roles.get(grantee, True) and grant_option
    return roles


def create_generic_grant(module, helper, kind, resource_name, privilege, roles, grant_option=False):
    """
    Grant ``privilege`` on a ``kind`` object to every role in ``roles``.

    Statements run one role at a time. The first failure raises
    RemoteExecutionError; roles granted before it keep their grant.

    Returns:
        GrantIdentity for the new grant; ``to_string()`` gives its grant ID.

    Raises:
        InvalidPrivilegeError: before any statement runs
        RemoteExecutionError: a GRANT statement failed
        EncodingError: grants were applied but no ID could be produced
    """
    privilege = validate_privilege(kind, privilege)
    roles = _unique(roles or [])
    if not roles:
        raise GrantError("No roles specified for %s grant on %s" % (privilege, resource_name))
    builder = _builder_for(kind, resource_name)

    for role in roles:
        query = builder.grant(privilege, role, grant_option)
        module.debug(f"Granting {privilege} on {kind.object_type} {resource_name} to {role}")
        try:
            helper.execute_query(query, fetch=False)
        except RemoteExecutionError as e:
            raise e.with_context(resource_name=resource_name, privilege=privilege, role=role)

    identity = GrantIdentity(resource_name, privilege, bool(grant_option), roles)
    try:
        identity.to_string()
    except EncodingError as e:
        module.warn(
            f"{privilege} on {kind.object_type} {resource_name} was granted to {', '.join(roles)} "
            f"but no grant ID could be encoded ({e}); these grants must be reconciled manually"
        )
        raise
    return identity


def read_generic_grant(module, helper, kind, grant_id):
    """
    Re-derive a grant's state from SHOW GRANTS.

    Returns:
        GrantRecord, or None when the granted object no longer exists.

    Raises:
        MalformedIDError: ``grant_id`` cannot be decoded
        RemoteExecutionError: SHOW GRANTS failed for another reason
    """
    identity = GrantIdentity.from_string(grant_id)
    privilege = validate_privilege(kind, identity.privilege)
    builder = _builder_for(kind, identity.resource_name)

    try:
        rows = helper.execute_query(builder.show())
    except RemoteExecutionError as e:
        if e.object_missing:
            module.debug(f"{kind.object_type} {identity.resource_name} no longer exists; grant is absent")
            return None
        raise e.with_context(resource_name=identity.resource_name, privilege=privilege)

    remote = remote_role_grants(rows, privilege, wildcard=is_wildcard_privilege(kind, privilege))

    if identity.roles:
        roles = tuple(role for role in identity.roles if role in remote)
        dropped = [role for role in identity.roles if role not in remote]
        if dropped:
            module.debug(f"Roles no longer holding {privilege} on {identity.resource_name}: {dropped}")
    else:
        roles = tuple(sorted(remote))

    grant_option = identity.grant_option
    if kind.verify_grant_option and roles:
        grant_option = all(remote[role] for role in roles)

    return GrantRecord(identity.resource_name, privilege, roles, grant_option)


def delete_generic_grant(module, helper, kind, grant_id, roles=None):
    """
    Revoke a grant from each of its roles.

    ``roles`` overrides the roles recorded in the grant ID. A revoke that
    fails because the object or role is already gone counts as done, so a
    repeated delete is safe.

    Returns:
        The REVOKE statements that were executed.
    """
    identity = GrantIdentity.from_string(grant_id)
    privilege = validate_privilege(kind, identity.privilege)
    builder = _builder_for(kind, identity.resource_name)
    if roles is None:
        roles = identity.roles

    queries = []
    for role in _unique(roles):
        query = builder.revoke(privilege, role)
        try:
            helper.execute_query(query, fetch=False)
        except RemoteExecutionError as e:
            if e.object_missing:
                module.debug(f"{privilege} on {identity.resource_name} already absent for {role}: {e.message}")
                continue
            raise e.with_context(resource_name=identity.resource_name, privilege=privilege, role=role)
        queries.append(query)
    return queries
