"""Template engine – evaluates Jinja templates in a bounded worker pool.

Templates use ``${expression}`` for interpolation and Jinja's ``{% ... %}``
statements. Each render runs in a sandboxed environment with the requested
locale and time zone activated, so interpolated numbers and dates follow the
Django formats of that locale.

Configuration is read from Django settings:

    RENDER_MAX_OUTPUT_LENGTH – characters kept before the output is truncated
    RENDER_MAX_THREADS       – worker threads evaluating templates
    RENDER_MAX_QUEUE_LENGTH  – renders allowed to wait for a free worker
    RENDER_TIMEOUT_SECONDS   – time limit of a single render

No threads are started at import time.
"""

import concurrent.futures
import logging
import sys
import threading
import time
import traceback
from datetime import date, datetime, time as dt_time
from decimal import Decimal
from typing import Any, Callable, Iterator, Optional
from zoneinfo import ZoneInfo

from django.conf import settings
from django.utils import formats, timezone, translation
from jinja2 import StrictUndefined, TemplateSyntaxError
from jinja2.sandbox import SandboxedEnvironment

from onlinetester.services.base import EngineOverloaded, ServiceNotConfigured
from .output_formats import OUTPUT_FORMATS, OutputFormat
from .schemas import CauseLink, Locale, RenderFailure, RenderResult, RenderSuccess

logger = logging.getLogger(__name__)

# Jinja compiles templates created with from_string() under this file name.
_TEMPLATE_FILENAME = '<template>'


class _RenderTimeout(Exception):
    """Raised inside a worker when the render deadline has passed."""


class _DeadlineWatch:
    """Interrupts template code that runs past *deadline*.

    While active, a trace function on the worker thread follows only frames
    compiled from template source and checks the clock on each of their line
    events, so loops that emit no output are stopped as well.
    """

    def __init__(self, deadline: float):
        self.deadline = deadline
        self._previous = None

    def __enter__(self):
        self._previous = sys.gettrace()
        sys.settrace(self._trace_call)
        return self

    def __exit__(self, *exc_info):
        sys.settrace(self._previous)
        return False

    def _trace_call(self, frame, event, arg):
        if frame.f_code.co_filename == _TEMPLATE_FILENAME:
            return self._trace_line
        return None

    def _trace_line(self, frame, event, arg):
        # Raising here unwinds the template frame; Python then drops the tracer.
        if event == 'line' and time.monotonic() > self.deadline:
            raise _RenderTimeout()
        return self._trace_line


# ---------------------------------------------------------------------------
# Locale-aware formatting
# ---------------------------------------------------------------------------

def _localize(value):
    if isinstance(value, datetime) and timezone.is_aware(value):
        return timezone.localtime(value)
    return value


def format_number(value, decimal_pos: Optional[int] = None) -> str:
    return formats.number_format(value, decimal_pos=decimal_pos, use_l10n=True, force_grouping=True)


def format_date(value, format_name: str = 'DATE_FORMAT') -> str:
    return formats.date_format(_localize(value), format_name, use_l10n=True)


def format_datetime(value, format_name: str = 'DATETIME_FORMAT') -> str:
    return formats.date_format(_localize(value), format_name, use_l10n=True)


def format_time(value, format_name: str = 'TIME_FORMAT') -> str:
    return formats.time_format(_localize(value), format_name, use_l10n=True)


def format_value(value: Any) -> Any:
    """Format an interpolated value for the active locale and time zone."""
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (int, float, Decimal)):
        return format_number(value)
    if isinstance(value, datetime):
        return format_datetime(value)
    if isinstance(value, date):
        return format_date(value)
    if isinstance(value, dt_time):
        return format_time(value)
    return value


def _make_finalize(output_format: OutputFormat) -> Callable[[Any], Any]:
    escaper = output_format.escaper
    if escaper is None:
        return format_value

    def finalize(value):
        return escaper(str(format_value(value)))

    return finalize


def _build_environment(output_format: OutputFormat) -> SandboxedEnvironment:
    env = SandboxedEnvironment(
        variable_start_string='${',
        variable_end_string='}',
        undefined=StrictUndefined,
        autoescape=output_format.autoescape,
        finalize=_make_finalize(output_format),
        keep_trailing_newline=True,
    )
    env.filters.update({
        'number': format_number,
        'date': format_date,
        'datetime': format_datetime,
        'time': format_time,
    })
    return env


# ---------------------------------------------------------------------------
# Failure cause chains
# ---------------------------------------------------------------------------

def _template_line(exc: BaseException) -> Optional[int]:
    if isinstance(exc, TemplateSyntaxError):
        return exc.lineno
    lineno = None
    for frame in traceback.extract_tb(exc.__traceback__):
        if frame.filename == _TEMPLATE_FILENAME:
            lineno = frame.lineno
    return lineno


def _describe(exc: BaseException) -> str:
    if isinstance(exc, TemplateSyntaxError):
        message = exc.message or ''
    else:
        message = str(exc)
    if not message:
        message = type(exc).__name__
    lineno = _template_line(exc)
    if lineno:
        message = f'{message} (line {lineno})'
    return message


def cause_chain(exc: BaseException) -> tuple[CauseLink, ...]:
    """Return the cause chain of *exc*, outermost exception first."""
    links: list[CauseLink] = []
    seen: set[int] = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        links.append(CauseLink(kind=type(current).__name__, message=_describe(current)))
        if current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None
    return tuple(links)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class TemplateEngine:
    """Renders templates on a fixed worker pool with non-blocking admission.

    At most ``max_threads + max_queue_length`` renders may be in flight; a
    render requested beyond that raises :class:`EngineOverloaded` straight away.
    """

    def __init__(
        self,
        *,
        max_output_length: int,
        max_threads: int,
        max_queue_length: int,
        timeout_seconds: float,
    ) -> None:
        if max_output_length <= 0:
            raise ValueError('max_output_length must be > 0')
        if max_threads <= 0:
            raise ValueError('max_threads must be > 0')
        if max_queue_length < 0:
            raise ValueError('max_queue_length must be >= 0')
        if timeout_seconds <= 0:
            raise ValueError('timeout_seconds must be > 0')

        self.max_output_length = max_output_length
        self.timeout_seconds = timeout_seconds
        self._environments = {fmt.name: _build_environment(fmt) for fmt in OUTPUT_FORMATS}
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_threads, thread_name_prefix='render',
        )
        self._permits = threading.BoundedSemaphore(max_threads + max_queue_length)

        logger.info(
            f"Template engine started (threads={max_threads}, queue={max_queue_length}, "
            f"timeout={timeout_seconds}s, max_output={max_output_length})"
        )

    # ---------------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------------

    def render(
        self,
        template: str,
        data_model: dict[str, Any],
        output_format: OutputFormat,
        locale: Locale,
        time_zone: ZoneInfo,
    ) -> RenderResult:
        """Evaluate *template* against *data_model* and wait for the result.

        Returns:
            :class:`RenderSuccess` with the (possibly truncated) output, or
            :class:`RenderFailure` when compiling or evaluating the template
            failed or the time limit was exceeded.

        Raises:
            :class:`~onlinetester.services.base.EngineOverloaded`: When every
                worker and queue slot is taken.
        """
        if not self._permits.acquire(blocking=False):
            raise EngineOverloaded('All rendering slots are in use.')

        deadline = time.monotonic() + self.timeout_seconds
        try:
            future = self._executor.submit(
                self._render_in_worker,
                template, data_model, output_format, locale, time_zone, deadline,
            )
        except RuntimeError as exc:
            self._permits.release()
            raise EngineOverloaded('The rendering engine is shut down.') from exc
        future.add_done_callback(lambda _future: self._permits.release())

        try:
            return future.result(timeout=self.timeout_seconds)
        except concurrent.futures.TimeoutError:
            logger.warning(f'Render did not finish within {self.timeout_seconds}s')
            return self._timeout_failure()

    def shutdown(self) -> None:
        """Stop accepting renders and wait for running ones to finish."""
        self._executor.shutdown(wait=True)

    # ---------------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------------

    def _render_in_worker(
        self,
        template: str,
        data_model: dict[str, Any],
        output_format: OutputFormat,
        locale: Locale,
        time_zone: ZoneInfo,
        deadline: float,
    ) -> RenderResult:
        env = self._environments[output_format.name]
        try:
            with translation.override(locale.language_code), timezone.override(time_zone), \
                    _DeadlineWatch(deadline):
                compiled = env.from_string(template)
                return self._collect(compiled.generate(data_model), deadline)
        except _RenderTimeout:
            return self._timeout_failure()
        except Exception as exc:
            logger.debug(f'Template evaluation failed: {exc}')
            return RenderFailure(causes=cause_chain(exc))

    def _collect(self, stream: Iterator[str], deadline: float) -> RenderSuccess:
        """Join output chunks, stopping at the output limit or the deadline."""
        chunks: list[str] = []
        length = 0
        try:
            for chunk in stream:
                if time.monotonic() > deadline:
                    raise _RenderTimeout()
                if length + len(chunk) > self.max_output_length:
                    chunks.append(chunk[:self.max_output_length - length])
                    return RenderSuccess(text=''.join(chunks), truncated=True)
                chunks.append(chunk)
                length += len(chunk)
        finally:
            close = getattr(stream, 'close', None)
            if close is not None:
                close()
        return RenderSuccess(text=''.join(chunks), truncated=False)

    def _timeout_failure(self) -> RenderFailure:
        message = f'Template execution has exceeded the {self.timeout_seconds:g} second time limit.'
        return RenderFailure(causes=(CauseLink(kind='RenderTimeout', message=message),))


# ---------------------------------------------------------------------------
# Process-wide engine
# ---------------------------------------------------------------------------

_engine: Optional[TemplateEngine] = None
_engine_lock = threading.Lock()


def _setting_number(name: str, cast: type, minimum) -> Any:
    raw = getattr(settings, name, None)
    try:
        value = cast(raw)
    except (TypeError, ValueError):
        raise ServiceNotConfigured(f'{name} must be a number, got: {raw!r}')
    if value < minimum:
        raise ServiceNotConfigured(f'{name} must be >= {minimum}, got: {value}')
    return value


def _load_config() -> dict:
    """Read and validate the engine configuration from Django settings."""
    return {
        'max_output_length': _setting_number('RENDER_MAX_OUTPUT_LENGTH', int, 1),
        'max_threads': _setting_number('RENDER_MAX_THREADS', int, 1),
        'max_queue_length': _setting_number('RENDER_MAX_QUEUE_LENGTH', int, 0),
        'timeout_seconds': _setting_number('RENDER_TIMEOUT_SECONDS', float, 0.001),
    }


def get_engine() -> TemplateEngine:
    """Return the process-wide engine, creating it on first use.

    Raises:
        ServiceNotConfigured: if a RENDER_* setting is missing or invalid.
    """
    global _engine
    if _engine is None:
        with _engine_lock:
            if _engine is None:
                _engine = TemplateEngine(**_load_config())
    return _engine


def shutdown_engine() -> None:
    """Shut the process-wide engine down; the next get_engine() builds a new one."""
    global _engine
    with _engine_lock:
        if _engine is not None:
            _engine.shutdown()
            _engine = None
