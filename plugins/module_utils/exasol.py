#!/usr/bin/python
# -*- coding: utf-8 -*-

# Copyright: (c) 2025, rpunt.exasol contributors
# Apache License, Version 2.0 (see LICENSE or http://www.apache.org/licenses/LICENSE-2.0)

from __future__ import absolute_import, division, print_function
__metaclass__ = type

import ssl
import time
import traceback
from ansible.module_utils.basic import env_fallback, missing_required_lib

from .exasol_errors import ExecutionError, TransactionCollisionError
from .exasol_identifiers import sanitize_sql

EXASOL_IMP_ERR = None
try:
    import pyexasol
    HAS_PYEXASOL = True
except ImportError:
    EXASOL_IMP_ERR = traceback.format_exc()
    HAS_PYEXASOL = False

# SQL status the server reports when it rolls back a colliding transaction
TRANSACTION_COLLISION_CODE = '40001'

# Personal access tokens are passed as the password and detected by prefix
PAT_PREFIX = 'exa_pat_'


def exasol_common_argument_spec():
    """
    Connection and retry options shared by every module of the collection
    """
    return dict(
        host=dict(type='str', default='localhost', fallback=(env_fallback, ['EXASOL_HOST'])),
        port=dict(type='int', default=8563, fallback=(env_fallback, ['EXASOL_PORT'])),
        login_user=dict(type='str', default='sys', aliases=['user'],
                        fallback=(env_fallback, ['EXASOL_USER'])),
        login_password=dict(type='str', no_log=True, aliases=['password'],
                            fallback=(env_fallback, ['EXASOL_PASSWORD'])),
        validate_server_certificate=dict(type='bool', default=True),
        encryption=dict(type='bool', default=True),
        connect_timeout=dict(type='int', default=30),
        collision_retries=dict(type='int', default=5),
        collision_backoff=dict(type='float', default=0.5),
    )


def _describe_error(message):
    """Prefix common Exasol failures with a readable category"""
    lowered = message.lower()
    if "not found" in lowered or "does not exist" in lowered:
        return f"Object does not exist: {message}"
    if "insufficient privileges" in lowered or "permission denied" in lowered:
        return f"Permission denied: {message}"
    if "syntax error" in lowered:
        return f"SQL syntax error: {message}"
    return f"Error executing query: {message}"


class ExasolHelper(object):
    """
    Helper class for managing Exasol connections and statement execution
    """

    def __init__(self, module):
        self.module = module
        params = module.params
        self.host = params.get('host') or 'localhost'
        self.port = params.get('port') or 8563
        self.user = params.get('login_user')
        self.password = params.get('login_password')
        self.validate_server_certificate = params.get('validate_server_certificate', True)
        self.encryption = params.get('encryption', True)
        self.conn_timeout = params.get('connect_timeout', 30)
        self.collision_retries = params.get('collision_retries', 5)
        self.collision_backoff = params.get('collision_backoff', 0.5)
        self.check_mode = module.check_mode
        self.conn = None
        # Sanitized statements that were executed (or would be, in check mode)
        self.queries = []

    def connect(self):
        """
        Connect to the Exasol instance
        """
        if not HAS_PYEXASOL:
            self.module.fail_json(msg=missing_required_lib("pyexasol"), exception=EXASOL_IMP_ERR)

        conn_params = dict(
            dsn=f"{self.host}:{self.port}",
            autocommit=True,
            encryption=self.encryption,
            connection_timeout=self.conn_timeout,
            client_name='ansible_exasol',  # Identify the session in EXA_DBA_SESSIONS
        )

        if self.password and self.password.startswith(PAT_PREFIX):
            conn_params['access_token'] = self.password
        else:
            conn_params['user'] = self.user
            conn_params['password'] = self.password

        if self.encryption and not self.validate_server_certificate:
            conn_params['websocket_sslopt'] = {'cert_reqs': ssl.CERT_NONE}

        # Attempt to connect with retries for transient network issues
        retries = 3
        delay = 2
        last_error = None

        for attempt in range(retries):
            try:
                self.conn = pyexasol.connect(**conn_params)
                return self.conn
            except (pyexasol.ExaConnectionError, pyexasol.ExaCommunicationError) as e:
                last_error = e
                if attempt < retries - 1:
                    time.sleep(delay)
                    delay *= 2  # Exponential backoff
            except pyexasol.ExaError as e:
                # Authentication and other non-transient errors, fail immediately
                self.module.fail_json(msg=f"Unable to connect to Exasol: {e}")

        self.module.fail_json(msg=f"Unable to connect to Exasol after multiple attempts: {last_error}")

    def _connection(self):
        if not self.conn:
            self.connect()
        return self.conn

    def execute(self, statement):
        """
        Execute a mutating statement (GRANT/REVOKE).

        A transaction collision is retried up to `collision_retries` times,
        doubling the delay each time. In check mode the statement is only
        recorded.

        Returns:
            bool: True if the statement was sent to the server

        Raises:
            TransactionCollisionError: if the collision outlived every retry
            ExecutionError: for any other server error
        """
        logged = sanitize_sql(statement)
        if self.check_mode:
            self.module.debug(f"Check mode, not executing: {logged}")
            self.queries.append(logged)
            return False

        delay = self.collision_backoff
        attempt = 0
        while True:
            attempt += 1
            self.module.debug(f"Executing: {logged}")
            try:
                self._connection().execute(statement)
                self.queries.append(logged)
                return True
            except pyexasol.ExaQueryError as e:
                code = getattr(e, 'code', None)
                message = getattr(e, 'message', None) or str(e)
                if str(code) != TRANSACTION_COLLISION_CODE:
                    raise ExecutionError(logged, _describe_error(message), code)
                if attempt > self.collision_retries:
                    raise TransactionCollisionError(
                        logged,
                        f"Transaction collision persisted after {attempt} attempts: {message}",
                        code,
                        attempts=attempt,
                    )
                self.module.debug(
                    f"Transaction collision on attempt {attempt}, retrying in {delay}s: {logged}"
                )
                time.sleep(delay)
                delay *= 2
            except pyexasol.ExaError as e:
                raise ExecutionError(logged, _describe_error(str(e)))

    def _query(self, query, params):
        try:
            return self._connection().execute(query, params)
        except pyexasol.ExaQueryError as e:
            message = getattr(e, 'message', None) or str(e)
            raise ExecutionError(query, _describe_error(message), getattr(e, 'code', None))
        except pyexasol.ExaError as e:
            raise ExecutionError(query, _describe_error(str(e)))

    def query_row(self, query, params=None):
        """
        Run a catalog query and return its first row, or None when empty
        """
        return self._query(query, params).fetchone()

    def query_all(self, query, params=None):
        """
        Run a catalog query and return all rows as a list of tuples
        """
        return self._query(query, params).fetchall()

    def close(self):
        """
        Close the database connection
        """
        if self.conn:
            self.conn.close()
            self.conn = None
