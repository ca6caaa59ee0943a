#!/usr/bin/python
# -*- coding: utf-8 -*-

# Copyright: (c) 2025, Cockroach Labs
# Apache License, Version 2.0 (see LICENSE or http://www.apache.org/licenses/LICENSE-2.0)

"""
Statement builders and privilege sets for each grantable resource kind.

Every kind is described by a GrantKind: the privileges it accepts, its
default privilege, whether reads re-verify the grant option from SHOW GRANTS
output, and a factory that builds a GrantBuilder for one named object.
"""

from __future__ import absolute_import, division, print_function
__metaclass__ = type

from ansible_collections.rpunt.snowflake.plugins.module_utils.privilege_set import (
    PrivilegeSet,
    PRIVILEGE_ALL,
    PRIVILEGE_CREATE_SCHEMA,
    PRIVILEGE_IMPORTED_PRIVILEGES,
    PRIVILEGE_MODIFY,
    PRIVILEGE_MONITOR,
    PRIVILEGE_OPERATE,
    PRIVILEGE_OWNERSHIP,
    PRIVILEGE_REFERENCE_USAGE,
    PRIVILEGE_USAGE,
)
from ansible_collections.rpunt.snowflake.plugins.module_utils.snowflake import quote_identifier


class GrantBuilder(object):
    """
    Builds GRANT, REVOKE and SHOW GRANTS statements for one object.

    Privileges must already be validated against the kind's PrivilegeSet;
    they are rendered verbatim. Object and role names are always quoted.
    """

    def __init__(self, object_type, qualified_name):
        self.object_type = object_type
        self.qualified_name = qualified_name

    @staticmethod
    def _privilege_sql(privilege):
        if privilege.upper() == PRIVILEGE_ALL:
            return "ALL PRIVILEGES"
        return privilege.upper()

    def grant(self, privilege, role, grant_option=False):
        query = "GRANT %s ON %s %s TO ROLE %s" % (
            self._privilege_sql(privilege), self.object_type, self.qualified_name, quote_identifier(role)
        )
        if grant_option:
            query += " WITH GRANT OPTION"
        return query

    def revoke(self, privilege, role):
        return "REVOKE %s ON %s %s FROM ROLE %s" % (
            self._privilege_sql(privilege), self.object_type, self.qualified_name, quote_identifier(role)
        )

    def show(self):
        return "SHOW GRANTS ON %s %s" % (self.object_type, self.qualified_name)


def split_qualified_name(name):
    """
    Split a dotted Snowflake name into its parts.

    Parts may be double-quoted to contain dots or quotes ("" inside a quoted
    part is a literal quote). Raises ValueError on unbalanced quotes or empty
    parts.
    """
    parts = []
    current = []
    quoted = False
    was_quoted = False
    i = 0
    while i < len(name):
        char = name[i]
        if quoted:
            if char == '"':
                if i + 1 < len(name) and name[i + 1] == '"':
                    current.append('"')
                    i += 2
                    continue
                quoted = False
            else:
                current.append(char)
        elif char == '"' and not current:
            quoted = True
            was_quoted = True
        elif char == '.':
            if not current and not was_quoted:
                raise ValueError("Empty part in name %r" % name)
            parts.append("".join(current))
            current = []
            was_quoted = False
        else:
            current.append(char)
        i += 1
    if quoted:
        raise ValueError("Unbalanced quotes in name %r" % name)
    if not current and not was_quoted:
        raise ValueError("Empty part in name %r" % name)
    parts.append("".join(current))
    return parts


def _single_part_builder(object_type):
    def factory(resource_name):
        return GrantBuilder(object_type, quote_identifier(resource_name))
    return factory


def schema_builder(resource_name):
    """Builder for a schema addressed as <database>.<schema>"""
    parts = split_qualified_name(resource_name)
    if len(parts) != 2:
        raise ValueError(
            "Schema grants need a name of the form <database>.<schema>, got %r" % resource_name
        )
    return GrantBuilder("SCHEMA", ".".join(quote_identifier(part) for part in parts))


def schema_resource_name(database_name, schema_name):
    """Resource name used in grant IDs for a schema"""
    def part(value):
        if '.' in value or '"' in value:
            return quote_identifier(value)
        return value
    return "%s.%s" % (part(database_name), part(schema_name))


class GrantKind(object):
    """One grantable resource kind and its statement builder"""

    def __init__(self, name, object_type, privileges, default_privilege, builder,
                 verify_grant_option=False):
        if default_privilege not in privileges:
            raise ValueError("Default privilege %s is not valid for %s" % (default_privilege, name))
        self.name = name
        self.object_type = object_type
        self.privileges = privileges
        self.default_privilege = default_privilege
        self.verify_grant_option = verify_grant_option
        self._builder = builder

    def builder(self, resource_name):
        return self._builder(resource_name)

    def __repr__(self):
        return "GrantKind(%r)" % self.name


RESOURCE_MONITOR_PRIVILEGES = PrivilegeSet(
    PRIVILEGE_ALL,
    PRIVILEGE_MODIFY,
    PRIVILEGE_MONITOR,
)

WAREHOUSE_PRIVILEGES = PrivilegeSet(
    PRIVILEGE_ALL,
    PRIVILEGE_MODIFY,
    PRIVILEGE_MONITOR,
    PRIVILEGE_OPERATE,
    PRIVILEGE_OWNERSHIP,
    PRIVILEGE_USAGE,
)

DATABASE_PRIVILEGES = PrivilegeSet(
    PRIVILEGE_ALL,
    PRIVILEGE_CREATE_SCHEMA,
    PRIVILEGE_IMPORTED_PRIVILEGES,
    PRIVILEGE_MODIFY,
    PRIVILEGE_MONITOR,
    PRIVILEGE_OWNERSHIP,
    PRIVILEGE_REFERENCE_USAGE,
    PRIVILEGE_USAGE,
)

SCHEMA_PRIVILEGES = PrivilegeSet(
    PRIVILEGE_ALL,
    "ADD SEARCH OPTIMIZATION",
    "CREATE EXTERNAL TABLE",
    "CREATE FILE FORMAT",
    "CREATE FUNCTION",
    "CREATE MASKING POLICY",
    "CREATE MATERIALIZED VIEW",
    "CREATE PIPE",
    "CREATE PROCEDURE",
    "CREATE ROW ACCESS POLICY",
    "CREATE SEQUENCE",
    "CREATE STAGE",
    "CREATE STREAM",
    "CREATE TABLE",
    "CREATE TAG",
    "CREATE TASK",
    "CREATE TEMPORARY TABLE",
    "CREATE VIEW",
    PRIVILEGE_MODIFY,
    PRIVILEGE_MONITOR,
    PRIVILEGE_OWNERSHIP,
    PRIVILEGE_USAGE,
)

INTEGRATION_PRIVILEGES = PrivilegeSet(
    PRIVILEGE_ALL,
    PRIVILEGE_OWNERSHIP,
    PRIVILEGE_USAGE,
)

# Resource monitors and integrations trust the grant option stored in the
# grant ID; the other kinds re-read it from SHOW GRANTS.
RESOURCE_MONITOR = GrantKind(
    "resource_monitor", "RESOURCE MONITOR", RESOURCE_MONITOR_PRIVILEGES,
    PRIVILEGE_MONITOR, _single_part_builder("RESOURCE MONITOR"),
)
WAREHOUSE = GrantKind(
    "warehouse", "WAREHOUSE", WAREHOUSE_PRIVILEGES,
    PRIVILEGE_USAGE, _single_part_builder("WAREHOUSE"), verify_grant_option=True,
)
DATABASE = GrantKind(
    "database", "DATABASE", DATABASE_PRIVILEGES,
    PRIVILEGE_USAGE, _single_part_builder("DATABASE"), verify_grant_option=True,
)
SCHEMA = GrantKind(
    "schema", "SCHEMA", SCHEMA_PRIVILEGES,
    PRIVILEGE_USAGE, schema_builder, verify_grant_option=True,
)
INTEGRATION = GrantKind(
    "integration", "INTEGRATION", INTEGRATION_PRIVILEGES,
    PRIVILEGE_USAGE, _single_part_builder("INTEGRATION"),
)

GRANT_KINDS = dict(
    (kind.name, kind)
    for kind in (RESOURCE_MONITOR, WAREHOUSE, DATABASE, SCHEMA, INTEGRATION)
)


def get_grant_kind(name):
    try:
        return GRANT_KINDS[name]
    except KeyError:
        raise ValueError("Unknown grant kind %r; expected one of: %s" % (name, ", ".join(sorted(GRANT_KINDS))))
