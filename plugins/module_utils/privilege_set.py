#!/usr/bin/python
# -*- coding: utf-8 -*-

# Copyright: (c) 2025, Cockroach Labs
# Apache License, Version 2.0 (see LICENSE or http://www.apache.org/licenses/LICENSE-2.0)

from __future__ import absolute_import, division, print_function
__metaclass__ = type

PRIVILEGE_ALL = "ALL"
PRIVILEGE_CREATE_SCHEMA = "CREATE SCHEMA"
PRIVILEGE_IMPORTED_PRIVILEGES = "IMPORTED PRIVILEGES"
PRIVILEGE_MODIFY = "MODIFY"
PRIVILEGE_MONITOR = "MONITOR"
PRIVILEGE_OPERATE = "OPERATE"
PRIVILEGE_OWNERSHIP = "OWNERSHIP"
PRIVILEGE_REFERENCE_USAGE = "REFERENCE_USAGE"
PRIVILEGE_USAGE = "USAGE"


class PrivilegeSet(object):
    """
    Ordered, immutable collection of the privileges valid for one resource kind.

    Duplicate tokens are dropped at construction time, compared without regard
    to case; the first spelling wins. Membership tests are case-insensitive.
    """

    __slots__ = ("_tokens", "_index")

    def __init__(self, *privileges):
        tokens = []
        index = {}
        for privilege in privileges:
            if not isinstance(privilege, str) or not privilege.strip():
                raise ValueError("Privilege tokens must be non-empty strings, got %r" % (privilege,))
            key = privilege.strip().upper()
            if key in index:
                continue
            index[key] = privilege.strip()
            tokens.append(privilege.strip())
        object.__setattr__(self, "_tokens", tuple(tokens))
        object.__setattr__(self, "_index", index)

    def __setattr__(self, name, value):
        raise AttributeError("PrivilegeSet is immutable")

    def to_list(self):
        """Privileges in insertion order"""
        return list(self._tokens)

    def contains(self, token):
        return self.canonical(token) is not None

    def canonical(self, token):
        """Return the stored spelling of ``token``, or None when it is not a member"""
        if not isinstance(token, str):
            return None
        return self._index.get(token.strip().upper())

    def __contains__(self, token):
        return self.contains(token)

    def __iter__(self):
        return iter(self._tokens)

    def __len__(self):
        return len(self._tokens)

    def __eq__(self, other):
        if not isinstance(other, PrivilegeSet):
            return NotImplemented
        return self._tokens == other._tokens

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self):
        return hash(self._tokens)

    def __repr__(self):
        return "PrivilegeSet(%s)" % ", ".join(repr(t) for t in self._tokens)
