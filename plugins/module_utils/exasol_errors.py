# -*- coding: utf-8 -*-

# Copyright: (c) 2025, rpunt.exasol contributors
# Apache License, Version 2.0 (see LICENSE or http://www.apache.org/licenses/LICENSE-2.0)

from __future__ import absolute_import, division, print_function
__metaclass__ = type


class ExasolGrantError(Exception):
    """Base class for every error raised by the grant engine"""


class ValidationError(ExasolGrantError):
    """
    A declaration carries a bad identifier or misses a required coordinate.

    Raised before any SQL is built, so nothing has touched the database.
    """

    def __init__(self, message, field=None, value=None):
        super(ValidationError, self).__init__(message)
        self.field = field
        self.value = value


class ExecutionError(ExasolGrantError):
    """
    A GRANT/REVOKE or catalog query failed on the server.

    Args:
        statement: The statement that failed, already sanitized
        message: The server's error message
        code: The server's SQL status code, when one was reported
    """

    def __init__(self, statement, message, code=None):
        super(ExecutionError, self).__init__(f"{message} (statement: {statement})")
        self.statement = statement
        self.message = message
        self.code = code


class TransactionCollisionError(ExecutionError):
    """The server rolled the statement back because of a transaction collision"""

    def __init__(self, statement, message, code=None, attempts=1):
        super(TransactionCollisionError, self).__init__(statement, message, code)
        self.attempts = attempts


class PartialUpdateError(ExecutionError):
    """
    An update applied some of its statements before one failed.

    `applied` lists the statements that did reach the database, so the
    caller can see the grant is neither in its old nor its new shape.
    """

    def __init__(self, statement, message, code=None, applied=None):
        super(PartialUpdateError, self).__init__(statement, message, code)
        self.applied = list(applied or [])
