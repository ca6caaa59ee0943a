#!/usr/bin/python
# -*- coding: utf-8 -*-

# Copyright: (c) 2025, Cockroach Labs
# Apache License, Version 2.0 (see LICENSE or http://www.apache.org/licenses/LICENSE-2.0)

from __future__ import absolute_import, division, print_function
__metaclass__ = type

# Snowflake error numbers that mean the target object (or grantee role) is gone
DOES_NOT_EXIST_ERR = 2003
OBJECT_DOES_NOT_EXIST_ERR = 2043
MISSING_OBJECT_ERRNOS = (DOES_NOT_EXIST_ERR, OBJECT_DOES_NOT_EXIST_ERR)


class GrantError(Exception):
    """Base class for all grant management errors"""


class InvalidPrivilegeError(GrantError):
    """The requested privilege is not valid for the resource kind"""

    def __init__(self, privilege, kind_name, valid_privileges):
        self.privilege = privilege
        self.kind_name = kind_name
        self.valid_privileges = list(valid_privileges)
        super(InvalidPrivilegeError, self).__init__(
            "Invalid privilege '%s' for %s grants; expected one of: %s"
            % (privilege, kind_name, ", ".join(self.valid_privileges))
        )


class MalformedIDError(GrantError):
    """A grant ID string could not be decoded"""

    def __init__(self, grant_id, reason):
        self.grant_id = grant_id
        self.reason = reason
        super(MalformedIDError, self).__init__(
            "Malformed grant ID %r: %s" % (grant_id, reason)
        )


class EncodingError(GrantError):
    """A grant identity field cannot be represented in a grant ID"""


class RemoteExecutionError(GrantError):
    """
    A statement failed on the remote system.

    Carries enough context (statement, resource, privilege, role and the
    remote message) for an operator to reconcile drifted state by hand.
    """

    def __init__(self, message, query=None, errno=None, sqlstate=None,
                 resource_name=None, privilege=None, role=None):
        self.message = message
        self.query = query
        self.errno = errno
        self.sqlstate = sqlstate
        self.resource_name = resource_name
        self.privilege = privilege
        self.role = role
        super(RemoteExecutionError, self).__init__(self._format())

    def _format(self):
        context = []
        if self.resource_name is not None:
            context.append("resource=%s" % self.resource_name)
        if self.privilege is not None:
            context.append("privilege=%s" % self.privilege)
        if self.role is not None:
            context.append("role=%s" % self.role)
        if self.errno is not None:
            context.append("errno=%s" % self.errno)
        msg = self.message
        if context:
            msg = "%s (%s)" % (msg, ", ".join(context))
        if self.query:
            msg = "%s [query: %s]" % (msg, self.query)
        return msg

    @property
    def object_missing(self):
        """True when the failure means the target object or role does not exist"""
        return self.errno in MISSING_OBJECT_ERRNOS

    def with_context(self, resource_name=None, privilege=None, role=None):
        """Return a copy of this error annotated with grant context"""
        return RemoteExecutionError(
            self.message,
            query=self.query,
            errno=self.errno,
            sqlstate=self.sqlstate,
            resource_name=resource_name if resource_name is not None else self.resource_name,
            privilege=privilege if privilege is not None else self.privilege,
            role=role if role is not None else self.role,
        )
