#!/usr/bin/python
# -*- coding: utf-8 -*-

# Copyright: (c) 2025, Cockroach Labs
# Apache License, Version 2.0 (see LICENSE or http://www.apache.org/licenses/LICENSE-2.0)

from __future__ import absolute_import, division, print_function
__metaclass__ = type

import traceback
import time
from ansible.module_utils.basic import env_fallback, missing_required_lib

from ansible_collections.rpunt.snowflake.plugins.module_utils.errors import RemoteExecutionError

SNOWFLAKE_IMP_ERR = None
try:
    import snowflake.connector
    from snowflake.connector import DictCursor
    from snowflake.connector.errors import Error as SnowflakeError
    from snowflake.connector.errors import OperationalError
    HAS_SNOWFLAKE_CONNECTOR = True
except ImportError:
    SNOWFLAKE_IMP_ERR = traceback.format_exc()
    HAS_SNOWFLAKE_CONNECTOR = False


def snowflake_common_argument_spec():
    """
    Connection options shared by every module in the collection.

    Each option falls back to the matching SNOWFLAKE_* environment variable.
    """
    return dict(
        account=dict(type='str', required=True, fallback=(env_fallback, ['SNOWFLAKE_ACCOUNT'])),
        user=dict(type='str', required=True, fallback=(env_fallback, ['SNOWFLAKE_USER'])),
        password=dict(type='str', no_log=True, fallback=(env_fallback, ['SNOWFLAKE_PASSWORD'])),
        private_key_path=dict(type='path', fallback=(env_fallback, ['SNOWFLAKE_PRIVATE_KEY_PATH'])),
        authenticator=dict(type='str', fallback=(env_fallback, ['SNOWFLAKE_AUTHENTICATOR'])),
        login_role=dict(type='str', fallback=(env_fallback, ['SNOWFLAKE_ROLE'])),
        warehouse=dict(type='str', fallback=(env_fallback, ['SNOWFLAKE_WAREHOUSE'])),
        connect_timeout=dict(type='int', default=30),
    )


def quote_identifier(identifier):
    """Double-quote a Snowflake identifier, doubling any embedded quotes"""
    return '"%s"' % identifier.replace('"', '""')


class SnowflakeHelper(object):
    """
    Helper class for managing Snowflake connections and statement execution
    """

    def __init__(self, module):
        self.module = module
        self.account = module.params.get('account')
        self.user = module.params.get('user')
        self.password = module.params.get('password')
        self.private_key_path = module.params.get('private_key_path')
        self.authenticator = module.params.get('authenticator')
        self.role = module.params.get('login_role')
        self.warehouse = module.params.get('warehouse')
        self.conn_timeout = module.params.get('connect_timeout', 30)
        self.conn = None

    def connect(self):
        """
        Connect to the Snowflake account
        """
        if not HAS_SNOWFLAKE_CONNECTOR:
            self.module.fail_json(msg=missing_required_lib("snowflake-connector-python"),
                                  exception=SNOWFLAKE_IMP_ERR)

        conn_params = dict(
            account=self.account,
            user=self.user,
            login_timeout=self.conn_timeout,
            application='ansible_snowflake',  # Identify the connection in query history
        )

        if self.password:
            conn_params['password'] = self.password

        if self.private_key_path:
            conn_params['private_key_file'] = self.private_key_path

        if self.authenticator:
            conn_params['authenticator'] = self.authenticator

        if self.role:
            conn_params['role'] = self.role

        if self.warehouse:
            conn_params['warehouse'] = self.warehouse

        # Retry connection setup on transient network failures only
        retries = 3
        delay = 2
        last_error = None

        for attempt in range(retries):
            try:
                self.conn = snowflake.connector.connect(**conn_params)
                return self.conn
            except OperationalError as e:
                last_error = e
                self.module.debug(f"Connection attempt {attempt + 1} failed: {e}")
                if attempt < retries - 1:
                    time.sleep(delay)
                    delay *= 2
            except SnowflakeError as e:
                self.module.fail_json(msg=f"Unable to connect to Snowflake: {e}")

        self.module.fail_json(msg="Unable to connect to Snowflake after multiple attempts: %s" % str(last_error))

    def execute_query(self, query, params=None, fetch=True):
        """
        Execute a SQL statement and return the results

        Args:
            query: The SQL statement to execute
            params: The parameters for the statement (optional)
            fetch: Whether to fetch and return rows (default: True)

        Returns:
            A list of rows as dicts keyed by lower-cased column name, or True
            when fetch is False.

        Raises:
            RemoteExecutionError: the statement failed remotely
        """
        if not self.conn:
            self.connect()

        self.module.debug(f"Executing statement: {query}")
        cursor = self.conn.cursor(DictCursor)
        try:
            cursor.execute(query, params)
            if not fetch:
                return True
            return [
                dict((key.lower(), value) for key, value in row.items())
                for row in cursor.fetchall()
            ]
        except SnowflakeError as e:
            raise RemoteExecutionError(
                getattr(e, 'raw_msg', None) or getattr(e, 'msg', None) or str(e),
                query=query,
                errno=getattr(e, 'errno', None),
                sqlstate=getattr(e, 'sqlstate', None),
            )
        finally:
            cursor.close()

    def close(self):
        """
        Close the connection
        """
        if self.conn:
            self.conn.close()
            self.conn = None
