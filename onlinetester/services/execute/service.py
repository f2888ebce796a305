"""Execute service – validates a request, renders it and builds the response."""

import logging
from typing import Optional

from django.conf import settings

from onlinetester.services.base import ServiceNotConfigured
from onlinetester.services.rendering.engine import TemplateEngine, get_engine
from onlinetester.services.rendering.schemas import RenderFailure
from onlinetester.services.setting_values import SettingValues, get_setting_values
from .dispatcher import Dispatcher
from .schemas import (
    CapacityRejected,
    DispatchOutcome,
    EmptyRequestResponse,
    ErrorCode,
    ExecuteResponse,
    Field,
    NormalizedInput,
    Problem,
    ProblemResponse,
    RawRequest,
    ResultResponse,
    SystemErrorResponse,
)
from .validators import (
    collect_problems,
    is_blank,
    validate_data_model,
    validate_locale,
    validate_output_format,
    validate_template,
    validate_time_zone,
)

logger = logging.getLogger(__name__)

SERVICE_OVERBURDEN_MESSAGE = (
    "Sorry, the service is overburden and couldn't handle your request now. Try again later."
)


def _length_limit(name: str) -> int:
    raw = getattr(settings, name, None)
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        raise ServiceNotConfigured(f'{name} must be an integer, got: {raw!r}')
    if limit <= 0:
        raise ServiceNotConfigured(f'{name} must be > 0, got: {limit}')
    return limit


def build_response(outcome: DispatchOutcome) -> ExecuteResponse:
    """Turn a dispatch outcome into the response sent to the client."""
    if isinstance(outcome, CapacityRejected):
        return SystemErrorResponse(ErrorCode.RENDER_SERVICE_OVERBURDEN, SERVICE_OVERBURDEN_MESSAGE)
    if isinstance(outcome, RenderFailure):
        return ProblemResponse((Problem(Field.TEMPLATE, outcome.flatten()),))
    return ResultResponse(result=outcome.text, truncated=outcome.truncated)


class ExecuteService:
    """Runs the validate → dispatch → respond pipeline for one request at a time.

    The service holds no per-request state; one instance may serve concurrent
    requests.
    """

    def __init__(
        self,
        engine: Optional[TemplateEngine] = None,
        setting_values: Optional[SettingValues] = None,
        max_template_length: Optional[int] = None,
        max_data_model_length: Optional[int] = None,
    ):
        """Initialize the execute service.

        Args:
            engine: Template engine to render with. Defaults to the process-wide engine.
            setting_values: Allowed-value tables. Defaults to the process-wide tables.
            max_template_length: Defaults to ``settings.TESTER_MAX_TEMPLATE_LENGTH``.
            max_data_model_length: Defaults to ``settings.TESTER_MAX_DATA_MODEL_LENGTH``.
        """
        self.dispatcher = Dispatcher(engine or get_engine())
        self.setting_values = setting_values or get_setting_values()
        self.max_template_length = (
            max_template_length if max_template_length is not None
            else _length_limit('TESTER_MAX_TEMPLATE_LENGTH')
        )
        self.max_data_model_length = (
            max_data_model_length if max_data_model_length is not None
            else _length_limit('TESTER_MAX_DATA_MODEL_LENGTH')
        )

    def execute(self, request: RawRequest) -> ExecuteResponse:
        """Validate *request*, render it if it is valid and return the response.

        Returns:
            :class:`EmptyRequestResponse` when neither template nor data model was
            given, :class:`ProblemResponse` for validation or template errors,
            :class:`SystemErrorResponse` when the engine is overloaded, otherwise
            :class:`ResultResponse`.
        """
        if is_blank(request.template) and is_blank(request.data_model):
            logger.debug('Rejected execute request without template and data model')
            return EmptyRequestResponse()

        values = self.setting_values
        template = validate_template(request.template, self.max_template_length)
        data_model = validate_data_model(
            request.data_model, self.max_data_model_length, values.default_time_zone,
        )
        output_format = validate_output_format(request.output_format, values)
        locale = validate_locale(request.locale, values)
        time_zone = validate_time_zone(request.time_zone, values)

        problems = collect_problems(template, data_model, output_format, locale, time_zone)
        if problems:
            logger.info(
                f"Execute request has {len(problems)} problem(s): "
                f"{', '.join(problem.field.value for problem in problems)}"
            )
            return ProblemResponse(problems)

        normalized = NormalizedInput(
            template=template[0],
            data_model=data_model[0],
            output_format=output_format[0],
            locale=locale[0],
            time_zone=time_zone[0],
        )
        return build_response(self.dispatcher.dispatch(normalized))


# Convenience function for direct usage
def execute(request: RawRequest) -> ExecuteResponse:
    """Run *request* through a service bound to the process-wide engine and tables."""
    return ExecuteService().execute(request)
