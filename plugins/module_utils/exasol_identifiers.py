# -*- coding: utf-8 -*-

# Copyright: (c) 2025, rpunt.exasol contributors
# Apache License, Version 2.0 (see LICENSE or http://www.apache.org/licenses/LICENSE-2.0)

"""
Identifier validation and escaping for Exasol SQL.

Exasol folds unquoted identifiers to uppercase, so every name is validated
against the unquoted-identifier grammar after uppercasing and then quoted.
Quoting a name that already passed validation never changes it; it only
keeps the rendered statement unambiguous.
"""

from __future__ import absolute_import, division, print_function
__metaclass__ = type

import re

from .exasol_errors import ValidationError

IDENTIFIER_RE = re.compile(r'^[A-Z][A-Z0-9_]*$')

# Privilege names and object types: CREATE SESSION, USE ANY SCHEMA, TABLE
KEYWORD_RE = re.compile(r'^[A-Z]+(?: [A-Z]+)*$')

# IDENTIFIED BY "secret" / IDENTIFIED BY 'secret', each quote doubled inside its own kind
PASSWORD_RE = re.compile(
    r'''(IDENTIFIED\s+BY\s+)(?:"(?:[^"]|"")*"|'(?:[^']|'')*')''',
    re.IGNORECASE,
)

REDACTED = '"***REDACTED***"'


def is_valid_identifier(name):
    """Check if the identifier is valid to avoid SQL injection"""
    if not name or not isinstance(name, str):
        return False
    return bool(IDENTIFIER_RE.match(name.upper()))


def validate_identifier(name, field):
    """
    Validate a user supplied name and return its case-folded form.

    Args:
        name: The identifier as declared
        field: Name of the declaration field, used in the error

    Returns:
        str: The uppercased identifier

    Raises:
        ValidationError: if the name is empty or contains invalid characters
    """
    if not is_valid_identifier(name):
        raise ValidationError(
            f"Invalid {field} {name!r}: identifiers must start with a letter "
            "and contain only letters, digits and underscores",
            field=field,
            value=name,
        )
    return name.upper()


def validate_keyword(value, field):
    """
    Validate a privilege name or object type and return it uppercased.

    Inner whitespace is collapsed so 'create   session' and 'CREATE SESSION'
    name the same privilege.
    """
    if not value or not isinstance(value, str):
        raise ValidationError(f"Missing {field}", field=field, value=value)
    normalized = ' '.join(value.split()).upper()
    if not KEYWORD_RE.match(normalized):
        raise ValidationError(
            f"Invalid {field} {value!r}: expected one or more words made of letters",
            field=field,
            value=value,
        )
    return normalized


def validate_qualified_name(name, field):
    """
    Validate SCHEMA or SCHEMA.OBJECT and return the uppercased name.

    Each segment is validated on its own; surrounding double quotes on a
    segment are tolerated and stripped.
    """
    if not name or not isinstance(name, str):
        raise ValidationError(f"Missing {field}", field=field, value=name)
    parts = [part.strip('"') for part in name.split('.')]
    if len(parts) > 2:
        raise ValidationError(
            f"Invalid {field} {name!r}: expected NAME or SCHEMA.NAME",
            field=field,
            value=name,
        )
    return '.'.join(validate_identifier(part, field) for part in parts)


def escape_identifier(name):
    """Double embedded double quotes for use inside a quoted identifier"""
    return name.replace('"', '""')


def quote_identifier(name):
    return f'"{escape_identifier(name)}"'


def escape_literal(value):
    """Double embedded single quotes for use inside a string literal"""
    return value.replace("'", "''")


def qualify(name):
    """
    Quote a possibly schema-qualified object name segment by segment.

    'MYSCHEMA.MYTABLE' renders as "MYSCHEMA"."MYTABLE", so the separator is
    never confused with quoted content.
    """
    return '.'.join(quote_identifier(part.strip('"')) for part in name.split('.'))


def split_qualified(name):
    """Return (schema, object) for SCHEMA.OBJECT and (None, name) otherwise"""
    if '.' in name:
        schema, obj = name.split('.', 1)
        return schema, obj
    return None, name


def sanitize_sql(statement):
    """Redact passwords from a statement before it is logged or reported"""
    return PASSWORD_RE.sub(lambda m: m.group(1) + REDACTED, statement)
