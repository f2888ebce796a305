"""Hands validated input to the template engine and classifies the outcome."""

import logging

from onlinetester.services.base import EngineOverloaded
from onlinetester.services.rendering.engine import TemplateEngine
from onlinetester.services.rendering.schemas import RenderFailure, RenderSuccess
from .schemas import CapacityRejected, DispatchOutcome, NormalizedInput

logger = logging.getLogger(__name__)


class Dispatcher:
    """Single blocking call into the engine; no retries, no queueing."""

    def __init__(self, engine: TemplateEngine):
        self.engine = engine

    def dispatch(self, normalized: NormalizedInput) -> DispatchOutcome:
        """Render *normalized* and return the classified outcome.

        Returns:
            :class:`RenderSuccess`, :class:`RenderFailure` for content errors,
            or :class:`CapacityRejected` when the engine refused the work.
        """
        try:
            outcome = self.engine.render(
                normalized.template,
                normalized.data_model,
                normalized.output_format,
                normalized.locale,
                normalized.time_zone,
            )
        except EngineOverloaded as e:
            logger.warning(f"Render rejected by engine admission control: {e}")
            return CapacityRejected(reason=str(e))

        if isinstance(outcome, RenderFailure):
            logger.info(f"Template evaluation failed: {outcome.causes[0].kind if outcome.causes else 'unknown'}")
        elif isinstance(outcome, RenderSuccess) and outcome.truncated:
            logger.info('Render output truncated')
        return outcome
