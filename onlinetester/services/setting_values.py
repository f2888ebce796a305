"""Allowed values for the output format, locale and time zone request settings.

The lookup tables are built once per process (see :func:`get_setting_values`)
and exposed as read-only mappings, so concurrent requests share them without
locking.
"""

import enum
import logging
import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional
from zoneinfo import ZoneInfo, available_timezones

from django.conf import settings
from django.conf.locale import LANG_INFO
from django.utils.translation import to_language, to_locale

from onlinetester.services.base import ServiceNotConfigured
from onlinetester.services.rendering.output_formats import OUTPUT_FORMATS, OutputFormat
from onlinetester.services.rendering.schemas import Locale

logger = logging.getLogger(__name__)


class SettingKind(enum.Enum):
    OUTPUT_FORMAT = 'output_format'
    LOCALE = 'locale'
    TIME_ZONE = 'time_zone'


@dataclass(frozen=True)
class SettingValues:
    """Allowed-value tables plus the defaults used for blank request settings."""

    output_formats: Mapping[str, OutputFormat]
    locales: Mapping[str, Locale]
    time_zones: Mapping[str, ZoneInfo]
    default_output_format: OutputFormat
    default_locale: Locale
    default_time_zone: ZoneInfo

    def table_for(self, kind: SettingKind) -> Mapping[str, Any]:
        if kind is SettingKind.OUTPUT_FORMAT:
            return self.output_formats
        if kind is SettingKind.LOCALE:
            return self.locales
        return self.time_zones

    def resolve(self, kind: SettingKind, token: str) -> Optional[Any]:
        """Return the value registered for *token*, or ``None`` if unknown."""
        return self.table_for(kind).get(token)

    def default_for(self, kind: SettingKind) -> Any:
        if kind is SettingKind.OUTPUT_FORMAT:
            return self.default_output_format
        if kind is SettingKind.LOCALE:
            return self.default_locale
        return self.default_time_zone


# ---------------------------------------------------------------------------
# Table construction
# ---------------------------------------------------------------------------

def _locale_from_name(name: str) -> Locale:
    language_code = to_language(name)
    info = LANG_INFO.get(language_code) or LANG_INFO.get(language_code.split('-')[0], {})
    display_name = info.get('name', name)
    if '_' in name and language_code not in LANG_INFO:
        display_name = f'{display_name} ({name.split("_", 1)[1]})'
    return Locale(name=name, language_code=language_code, display_name=display_name)


def build_locale_table(extra_names: tuple[str, ...] = ()) -> dict[str, Locale]:
    """Build the locale table from Django's language registry.

    Entries that only point at a fallback language are skipped; *extra_names*
    (Java-style names such as ``'en_US'``) are added on top.
    """
    table: dict[str, Locale] = {}
    for code, info in LANG_INFO.items():
        if 'fallback' in info:
            continue
        name = to_locale(code)
        table[name] = Locale(name=name, language_code=code, display_name=info['name'])
    for name in extra_names:
        table.setdefault(name, _locale_from_name(name))
    return dict(sorted(table.items()))


def build_time_zone_table() -> dict[str, ZoneInfo]:
    return {key: ZoneInfo(key) for key in sorted(available_timezones())}


def build_setting_values() -> SettingValues:
    """Build the tables and resolve the configured defaults.

    Raises:
        ServiceNotConfigured: if a configured default is not an allowed value.
    """
    default_output_format_name = settings.TESTER_DEFAULT_OUTPUT_FORMAT
    default_locale_name = settings.TESTER_DEFAULT_LOCALE
    default_time_zone_name = settings.TESTER_DEFAULT_TIME_ZONE

    output_formats = {fmt.name: fmt for fmt in OUTPUT_FORMATS}
    locales = build_locale_table(extra_names=(default_locale_name,))
    time_zones = build_time_zone_table()

    if default_output_format_name not in output_formats:
        raise ServiceNotConfigured(
            f'TESTER_DEFAULT_OUTPUT_FORMAT is not a known output format: {default_output_format_name!r}'
        )
    if default_time_zone_name not in time_zones:
        raise ServiceNotConfigured(
            f'TESTER_DEFAULT_TIME_ZONE is not a known time zone: {default_time_zone_name!r}'
        )

    logger.debug(
        f"Built setting tables: {len(output_formats)} output formats, "
        f"{len(locales)} locales, {len(time_zones)} time zones"
    )

    return SettingValues(
        output_formats=MappingProxyType(output_formats),
        locales=MappingProxyType(locales),
        time_zones=MappingProxyType(time_zones),
        default_output_format=output_formats[default_output_format_name],
        default_locale=locales[default_locale_name],
        default_time_zone=time_zones[default_time_zone_name],
    )


# ---------------------------------------------------------------------------
# Process-wide tables
# ---------------------------------------------------------------------------

_setting_values: Optional[SettingValues] = None
_lock = threading.Lock()


def get_setting_values() -> SettingValues:
    """Return the shared tables, building them on first use."""
    global _setting_values
    if _setting_values is None:
        with _lock:
            if _setting_values is None:
                _setting_values = build_setting_values()
    return _setting_values


def reset_setting_values() -> None:
    """Drop the shared tables so the next call rebuilds them from settings."""
    global _setting_values
    with _lock:
        _setting_values = None
