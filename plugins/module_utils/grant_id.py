#!/usr/bin/python
# -*- coding: utf-8 -*-

# Copyright: (c) 2025, Cockroach Labs
# Apache License, Version 2.0 (see LICENSE or http://www.apache.org/licenses/LICENSE-2.0)

"""
Grant identity codec.

A grant is addressed by a single flat string, the grant ID:

    <resource_name>|<privilege>|<true|false>[|<role>]*

Inside a field a backslash escapes the next character: ``\\\\`` is a literal
backslash and ``\\|`` a literal pipe. A leading ``~`` in the first field is
written as ``\\~`` because an unescaped leading ``~<N>`` field is a schema
version marker. Version 1 IDs are written without a marker.
"""

from __future__ import absolute_import, division, print_function
__metaclass__ = type

import re
from collections import namedtuple

from ansible_collections.rpunt.snowflake.plugins.module_utils.errors import (
    EncodingError,
    MalformedIDError,
)

GRANT_ID_DELIMITER = "|"
GRANT_ID_ESCAPE = "\\"
GRANT_ID_VERSION_MARKER = "~"
GRANT_ID_SCHEMA_VERSION = 1

_ESCAPABLE = (GRANT_ID_ESCAPE, GRANT_ID_DELIMITER, GRANT_ID_VERSION_MARKER)
_FORBIDDEN_CHARS = ("\n", "\r", "\x00")
_VERSION_FIELD_RE = re.compile(r"^~(\d+)$")
_BOOL_VALUES = {"true": True, "false": False}


class GrantIdentity(namedtuple("GrantIdentity", ["resource_name", "privilege", "grant_option", "roles"])):
    """Decoded form of a grant ID"""

    __slots__ = ()

    def __new__(cls, resource_name, privilege, grant_option=False, roles=()):
        return super(GrantIdentity, cls).__new__(
            cls, resource_name, privilege, grant_option, tuple(roles or ())
        )

    def to_string(self):
        return encode(self)

    @classmethod
    def from_string(cls, grant_id):
        return decode(grant_id)


def _escape_field(name, value, leading=False):
    if not isinstance(value, str):
        raise EncodingError("Grant ID field '%s' must be a string, got %r" % (name, value))
    for char in _FORBIDDEN_CHARS:
        if char in value:
            raise EncodingError(
                "Grant ID field '%s' contains a character that cannot be encoded: %r" % (name, value)
            )
    escaped = value.replace(GRANT_ID_ESCAPE, GRANT_ID_ESCAPE * 2)
    escaped = escaped.replace(GRANT_ID_DELIMITER, GRANT_ID_ESCAPE + GRANT_ID_DELIMITER)
    if leading and escaped.startswith(GRANT_ID_VERSION_MARKER):
        escaped = GRANT_ID_ESCAPE + escaped
    return escaped


def encode(identity):
    """
    Encode a GrantIdentity into its grant ID string.

    Raises EncodingError when a field is empty, not a string, or holds a
    character that cannot appear in a single-line ID.
    """
    if not identity.resource_name:
        raise EncodingError("Grant ID requires a resource name")
    if not identity.privilege:
        raise EncodingError("Grant ID requires a privilege (resource %r)" % (identity.resource_name,))
    if not isinstance(identity.grant_option, bool):
        raise EncodingError("Grant option must be a boolean, got %r" % (identity.grant_option,))

    fields = [
        _escape_field("resource_name", identity.resource_name, leading=True),
        _escape_field("privilege", identity.privilege),
        "true" if identity.grant_option else "false",
    ]
    for role in identity.roles:
        if not role:
            raise EncodingError("Grant ID roles must be non-empty (resource %r)" % (identity.resource_name,))
        fields.append(_escape_field("roles", role))
    return GRANT_ID_DELIMITER.join(fields)


def _split_fields(grant_id):
    """Split on unescaped delimiters, returning (value, raw_leading_marker) pairs"""
    fields = []
    current = []
    marker = False
    i = 0
    length = len(grant_id)
    while i < length:
        char = grant_id[i]
        if char == GRANT_ID_ESCAPE:
            if i + 1 >= length:
                raise MalformedIDError(grant_id, "dangling escape character at end of ID")
            following = grant_id[i + 1]
            if following not in _ESCAPABLE:
                raise MalformedIDError(grant_id, "invalid escape sequence %r" % (char + following))
            current.append(following)
            i += 2
            continue
        if char == GRANT_ID_DELIMITER:
            fields.append(("".join(current), marker))
            current = []
            marker = False
        else:
            if char == GRANT_ID_VERSION_MARKER and not current and not fields:
                marker = True
            current.append(char)
        i += 1
    fields.append(("".join(current), marker))
    return fields


def decode(grant_id):
    """
    Decode a grant ID string into a GrantIdentity.

    Raises MalformedIDError when the ID does not follow the supported schema.
    """
    if not isinstance(grant_id, str) or not grant_id:
        raise MalformedIDError(grant_id, "grant ID must be a non-empty string")

    fields = _split_fields(grant_id)

    value, is_marker = fields[0]
    if is_marker:
        match = _VERSION_FIELD_RE.match(value)
        if not match:
            raise MalformedIDError(grant_id, "invalid schema version marker %r" % value)
        version = int(match.group(1))
        if version != GRANT_ID_SCHEMA_VERSION:
            raise MalformedIDError(
                grant_id,
                "unsupported schema version %d (supported: %d)" % (version, GRANT_ID_SCHEMA_VERSION),
            )
        fields = fields[1:]

    values = [field[0] for field in fields]
    if len(values) < 3:
        raise MalformedIDError(
            grant_id, "expected at least 3 fields, found %d" % len(values)
        )

    resource_name, privilege, grant_option = values[0], values[1], values[2]
    if not resource_name:
        raise MalformedIDError(grant_id, "resource name is empty")
    if not privilege:
        raise MalformedIDError(grant_id, "privilege is empty")
    if grant_option.lower() not in _BOOL_VALUES:
        raise MalformedIDError(grant_id, "grant option %r is not 'true' or 'false'" % grant_option)

    roles = values[3:]
    if any(not role for role in roles):
        raise MalformedIDError(grant_id, "empty role name")

    return GrantIdentity(resource_name, privilege, _BOOL_VALUES[grant_option.lower()], roles)
