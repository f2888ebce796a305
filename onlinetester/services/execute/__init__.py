"""Validation-and-dispatch pipeline behind the execute API."""

from .schemas import Field, Problem, RawRequest
from .service import ExecuteService, execute

__all__ = ['ExecuteService', 'Field', 'Problem', 'RawRequest', 'execute']
