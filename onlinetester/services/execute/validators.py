"""Per-field validators of the execute pipeline.

Every validator is a pure function returning a ``(value, problem)`` pair and
never looks at other fields, so one request reports all of its problems at
once. :func:`collect_problems` combines the pairs afterwards.
"""

from datetime import tzinfo
from typing import Any, Optional

from onlinetester.services.datamodel import DataModelParsingError, parse_data_model
from onlinetester.services.setting_values import SettingKind, SettingValues
from .schemas import Field, Problem

TEMPLATE_TOO_LONG_MESSAGE = (
    'The template length has exceeded the {limit:,} character limit set for this service.'
)
DATA_MODEL_TOO_LONG_MESSAGE = (
    'The data model length has exceeded the {limit:,} character limit set for this service.'
)
UNKNOWN_OUTPUT_FORMAT_MESSAGE = 'Unknown output format: {token}'
UNKNOWN_LOCALE_MESSAGE = 'Unknown locale: {token}'
UNKNOWN_TIME_ZONE_MESSAGE = 'Unknown time zone: {token}'

DATA_MODEL_ERROR_HEADING = 'Failed to parse data model:'
DATA_MODEL_ERROR_FOOTER = (
    'Note: This is NOT a template engine error message. '
    'The data model syntax is specific to this online service.'
)

Validated = tuple[Optional[Any], Optional[Problem]]


def is_blank(text: Optional[str]) -> bool:
    return text is None or not text.strip()


def decorate_data_model_error(message: str) -> str:
    return f'{DATA_MODEL_ERROR_HEADING}\n\n{message}\n\n{DATA_MODEL_ERROR_FOOTER}'


def validate_template(raw: Optional[str], max_length: int) -> Validated:
    template = raw or ''
    if len(template) > max_length:
        return None, Problem(Field.TEMPLATE, TEMPLATE_TOO_LONG_MESSAGE.format(limit=max_length))
    return template, None


def validate_data_model(raw: Optional[str], max_length: int, default_time_zone: tzinfo) -> Validated:
    text = raw or ''
    if len(text) > max_length:
        return None, Problem(Field.DATA_MODEL, DATA_MODEL_TOO_LONG_MESSAGE.format(limit=max_length))
    try:
        return parse_data_model(text, default_time_zone), None
    except DataModelParsingError as e:
        return None, Problem(Field.DATA_MODEL, decorate_data_model_error(str(e)))


def _validate_setting(
    raw: Optional[str],
    kind: SettingKind,
    field: Field,
    message: str,
    setting_values: SettingValues,
) -> Validated:
    if is_blank(raw):
        return setting_values.default_for(kind), None
    value = setting_values.resolve(kind, raw)
    if value is None:
        return None, Problem(field, message.format(token=raw))
    return value, None


def validate_output_format(raw: Optional[str], setting_values: SettingValues) -> Validated:
    return _validate_setting(
        raw, SettingKind.OUTPUT_FORMAT, Field.OUTPUT_FORMAT, UNKNOWN_OUTPUT_FORMAT_MESSAGE, setting_values,
    )


def validate_locale(raw: Optional[str], setting_values: SettingValues) -> Validated:
    return _validate_setting(
        raw, SettingKind.LOCALE, Field.LOCALE, UNKNOWN_LOCALE_MESSAGE, setting_values,
    )


def validate_time_zone(raw: Optional[str], setting_values: SettingValues) -> Validated:
    return _validate_setting(
        raw, SettingKind.TIME_ZONE, Field.TIME_ZONE, UNKNOWN_TIME_ZONE_MESSAGE, setting_values,
    )


def collect_problems(*results: Validated) -> tuple[Problem, ...]:
    """Return the problems of *results* in the order the results were given."""
    return tuple(problem for _value, problem in results if problem is not None)
