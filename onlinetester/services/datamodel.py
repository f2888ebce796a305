"""Parser for the data model text submitted to the online tester.

The syntax is specific to this service. Each assignment starts in the first
column of a line, either as ``name = value`` or ``name: value``; indented lines
continue the previous value and ``#`` lines are comments::

    name = "World"
    count: 42
    tags = [red, green, blue]
    user = {name: Jane, roles: [admin, editor]}
    released = 2024-05-01T10:30:00
    doc = <book><title>Test</title></book>

Values are YAML scalars or flow collections (so JSON works too). Timestamps
without an offset get the default time zone. A value starting with ``<`` is
parsed as a markup document.
"""

import re
from datetime import datetime, tzinfo
from typing import Any

import yaml
from bs4 import BeautifulSoup

_ASSIGNMENT_RE = re.compile(r'^([A-Za-z_][A-Za-z0-9_]*)\s*(?:=|:(?=\s|$))\s*(.*)$')


class DataModelParsingError(Exception):
    """Raised when the data model text cannot be parsed."""


def parse_data_model(text: str, default_time_zone: tzinfo) -> dict[str, Any]:
    """Parse *text* into a mapping from variable name to value.

    Args:
        text: The data model text; blank text yields an empty mapping.
        default_time_zone: Time zone attached to timestamps without an offset.

    Returns:
        Dict of parsed values in assignment order.

    Raises:
        DataModelParsingError: On a malformed line, a duplicate name or an
            unparsable value. The message names the offending line.
    """
    data_model: dict[str, Any] = {}
    assigned_at: dict[str, int] = {}

    name = None
    first_line = 0
    value_lines: list[str] = []

    def flush():
        if name is None:
            return
        data_model[name] = _parse_value(name, '\n'.join(value_lines), first_line, default_time_zone)

    for lineno, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            if name is not None:
                value_lines.append('')
            continue
        if line[0] in ' \t':
            if name is None:
                raise DataModelParsingError(
                    f'Line {lineno}: Indented line without a preceding assignment.'
                )
            value_lines.append(line)
            continue
        if line.startswith('#'):
            continue

        match = _ASSIGNMENT_RE.match(line)
        if match is None:
            raise DataModelParsingError(
                f'Line {lineno}: Expected an assignment like "name = value", but found: {line.strip()}'
            )

        flush()
        name, first_value = match.group(1), match.group(2)
        if name in assigned_at:
            raise DataModelParsingError(
                f'Line {lineno}: "{name}" was already assigned in line {assigned_at[name]}.'
            )
        assigned_at[name] = lineno
        first_line = lineno
        value_lines = [first_value]

    flush()
    return data_model


def _parse_value(name: str, raw: str, lineno: int, default_time_zone: tzinfo) -> Any:
    raw = raw.strip()
    if not raw:
        return ''
    if raw.startswith('<'):
        return BeautifulSoup(raw, 'html.parser')
    try:
        value = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        problem = getattr(e, 'problem', None) or str(e)
        raise DataModelParsingError(f'Line {lineno}: Invalid value for "{name}": {problem}')
    except (ValueError, OverflowError) as e:
        # Scanned as a timestamp, rejected by datetime (e.g. 2024-02-30).
        raise DataModelParsingError(f'Line {lineno}: Invalid value for "{name}": {e}')
    return _with_time_zone(value, default_time_zone)


def _with_time_zone(value: Any, default_time_zone: tzinfo) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=default_time_zone)
        return value
    if isinstance(value, list):
        return [_with_time_zone(item, default_time_zone) for item in value]
    if isinstance(value, dict):
        return {key: _with_time_zone(item, default_time_zone) for key, item in value.items()}
    return value
