"""Response normalization: raw model reply in, ordered Dataset out.

The normalizer walks an explicit, ordered tuple of parse strategies and stops
at the first one that yields rows. Strategy failures are values, not
exceptions; only the final outcome raises.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING

from docsheet.constants import EXCERPT_LIMIT
from docsheet.core.types import Dataset, Failure
from docsheet.exceptions import EmptyReplyError, UnparsableResponseError, excerpt
from docsheet.response.strategies import ParseInput, ParseStrategy, default_strategies
from docsheet.telemetry import TelemetryContext

if TYPE_CHECKING:
    from collections.abc import Iterable

    from docsheet.telemetry import TelemetryContextProtocol

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class NormalizedReply:
    records: Dataset
    method: str


class ResponseNormalizer:
    """Recover a non-empty Dataset from a model reply.

    Attributes:
        strategies: Parse strategies in the order they are tried.
        excerpt_limit: Characters of the raw reply kept on a failure.
    """

    def __init__(
        self,
        strategies: Iterable[ParseStrategy] | None = None,
        *,
        excerpt_limit: int = EXCERPT_LIMIT,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        self.strategies: tuple[ParseStrategy, ...] = (
            tuple(strategies) if strategies is not None else default_strategies()
        )
        if not self.strategies:
            raise ValueError("ResponseNormalizer needs at least one strategy")
        self.excerpt_limit = excerpt_limit
        self._telemetry = telemetry or TelemetryContext()

    def normalize(self, text: str | None) -> NormalizedReply:
        """Parse ``text`` into records.

        Raises:
            EmptyReplyError: ``text`` is missing or blank.
            UnparsableResponseError: No strategy produced a single row.
        """
        if text is None or not text.strip():
            raise EmptyReplyError("Model reply is empty")

        view = ParseInput.from_reply(text)
        attempts: dict[str, str] = {}

        with self._telemetry("normalize", chars=len(text)) as tele:
            for strategy in self.strategies:
                outcome = strategy.parse(view)
                if isinstance(outcome, Failure):
                    attempts[strategy.name] = outcome.error
                    log.debug(
                        "Parse strategy '%s' failed: %s", strategy.name, outcome.error
                    )
                    continue
                if not outcome.value:
                    attempts[strategy.name] = "no rows"
                    continue

                records = outcome.value
                tele.metric("rows", len(records), method=strategy.name)
                if attempts:
                    log.info(
                        "Reply parsed by '%s' after %d failed strateg%s",
                        strategy.name,
                        len(attempts),
                        "y" if len(attempts) == 1 else "ies",
                    )
                return NormalizedReply(records=records, method=strategy.name)

        log.warning("No parse strategy recovered rows: %s", attempts)
        raise UnparsableResponseError(
            "Could not parse AI response as JSON or a pipe-delimited table",
            excerpt=excerpt(text, self.excerpt_limit),
            attempts=attempts,
        )


def normalize_reply(text: str | None) -> Dataset:
    """Normalize ``text`` with the default strategies and return the records."""
    return ResponseNormalizer().normalize(text).records
