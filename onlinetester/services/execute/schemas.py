"""Request, problem and response types of the execute pipeline."""

import enum
from dataclasses import dataclass
from typing import Any, Optional, Union
from zoneinfo import ZoneInfo

from onlinetester.services.rendering.output_formats import OutputFormat
from onlinetester.services.rendering.schemas import Locale, RenderFailure, RenderSuccess


class Field(enum.Enum):
    """Request fields a problem can be attached to, in declaration order."""

    TEMPLATE = 'TEMPLATE'
    DATA_MODEL = 'DATA_MODEL'
    OUTPUT_FORMAT = 'OUTPUT_FORMAT'
    LOCALE = 'LOCALE'
    TIME_ZONE = 'TIME_ZONE'


class ErrorCode(enum.Enum):
    RENDER_SERVICE_OVERBURDEN = 'RENDER_SERVICE_OVERBURDEN'


@dataclass(frozen=True)
class RawRequest:
    """The five text fields of an execute request, ``None`` meaning blank."""

    template: Optional[str] = None
    data_model: Optional[str] = None
    output_format: Optional[str] = None
    locale: Optional[str] = None
    time_zone: Optional[str] = None


@dataclass(frozen=True)
class Problem:
    field: Field
    message: str

    def as_dict(self) -> dict:
        return {'field': self.field.value, 'message': self.message}


@dataclass(frozen=True)
class NormalizedInput:
    """Validated inputs for the engine; only built when no problem was found."""

    template: str
    data_model: dict[str, Any]
    output_format: OutputFormat
    locale: Locale
    time_zone: ZoneInfo


@dataclass(frozen=True)
class CapacityRejected:
    """The engine refused the render because all of its slots were taken."""

    reason: str = ''


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EmptyRequestResponse:
    """Neither a template nor a data model was submitted."""

    message: str = 'Empty Template & data'


@dataclass(frozen=True)
class ProblemResponse:
    problems: tuple[Problem, ...]

    def __post_init__(self):
        if not self.problems:
            raise ValueError('ProblemResponse requires at least one problem')

    def as_dict(self) -> dict:
        return {'problems': [problem.as_dict() for problem in self.problems]}


@dataclass(frozen=True)
class ResultResponse:
    result: str
    truncated: bool

    def as_dict(self) -> dict:
        return {'result': self.result, 'truncatedResult': self.truncated, 'problems': []}


@dataclass(frozen=True)
class SystemErrorResponse:
    error_code: ErrorCode
    message: str

    def as_dict(self) -> dict:
        return {'errorCode': self.error_code.value, 'message': self.message}


ExecuteResponse = Union[EmptyRequestResponse, ProblemResponse, ResultResponse, SystemErrorResponse]
DispatchOutcome = Union[RenderSuccess, RenderFailure, CapacityRejected]
