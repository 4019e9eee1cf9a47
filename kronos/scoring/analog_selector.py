"""
Historical analog selection.

The static scenario -> analog table always resolves. The generative path adds
similarity, matching factors, key events and reasoning, but its analog ID must
normalize to a known analog; a generated ID that does not is a hard error.
"""

from __future__ import annotations

import asyncio
import re
from typing import Mapping

from kronos.core.config import Settings, get_settings
from kronos.core.exceptions import MarketDataError, UnresolvableAnalogError
from kronos.core.logging import get_logger
from kronos.scoring.constants import (
    ANALOG_ID_SYNONYMS,
    HISTORICAL_ANALOGS,
    get_analog_for_scenario,
)
from kronos.scoring.generative import Err, attempt_structured
from kronos.scoring.schemas import (
    AnalogId,
    AnalogMatch,
    AnalogSelection,
    ClassificationMethod,
    ScenarioId,
)
from kronos.services.data_providers.yfinance_service import MarketDataProvider
from kronos.services.openai.generate import GenerativeClient
from kronos.services.openai.prompts import ANALOG_INSTRUCTIONS, build_analog_prompt
from kronos.services.openai.schemas import AnalogSelectionOutput

logger = get_logger("scoring.analog_selector")

_YEAR_SUFFIX = re.compile(r"_(19|20)\d{2}$")
_SEPARATORS = re.compile(r"[\s\-]+")

# Indicators included in the generative prompt when market data is reachable
SNAPSHOT_TICKERS: Mapping[str, str] = {
    "S&P 500": "^GSPC",
    "VIX": "^VIX",
    "10Y Treasury yield": "^TNX",
}


def build_synonym_table(extra: Mapping[str, str] | None = None) -> dict[str, AnalogId]:
    """
    Default synonyms merged with configured ones; configured entries win.

    Configured keys are normalized the same way incoming IDs are, so
    "Great Lockdown" and "great-lockdown" both land on GREAT_LOCKDOWN.
    """
    table = dict(ANALOG_ID_SYNONYMS)
    for raw, target in (extra or {}).items():
        try:
            key = _SEPARATORS.sub("_", raw.strip().upper())
            table[key] = AnalogId(_SEPARATORS.sub("_", target.strip().upper()))
        except ValueError:
            logger.warning(f"Ignoring analog synonym {raw!r} -> {target!r}: unknown analog")
    return table


def normalize_analog_id(raw_id: str, synonyms: Mapping[str, AnalogId] | None = None) -> AnalogId:
    """
    Map a loosely written analog ID onto a canonical one.

    Steps: uppercase and underscore separators, exact match, synonym lookup,
    strip a trailing _YYYY, then exact match and synonym lookup again.

    Raises:
        UnresolvableAnalogError: nothing matched
    """
    table = synonyms if synonyms is not None else ANALOG_ID_SYNONYMS
    candidate = _SEPARATORS.sub("_", raw_id.strip().upper())

    for key in (candidate, _YEAR_SUFFIX.sub("", candidate)):
        if key in AnalogId.__members__:
            return AnalogId(key)
        if key in table:
            return table[key]

    raise UnresolvableAnalogError(raw_id, normalized_id=candidate)


class AnalogSelector:
    """Chooses the historical period that stands in for a scenario."""

    def __init__(
        self,
        client: GenerativeClient | None = None,
        market_data: MarketDataProvider | None = None,
        settings: Settings | None = None,
    ):
        self._client = client
        self._market_data = market_data
        self._settings = settings or get_settings()
        self._synonyms = build_synonym_table(self._settings.analog_id_synonyms)

    @property
    def generative_enabled(self) -> bool:
        return (
            self._settings.generative_enabled
            and self._client is not None
            and self._client.is_available()
        )

    def select_static(self, scenario_id: ScenarioId) -> AnalogSelection:
        return AnalogSelection(
            analog=get_analog_for_scenario(scenario_id),
            method=ClassificationMethod.STATIC,
        )

    async def select(self, scenario_id: ScenarioId, question: str | None = None) -> AnalogSelection:
        """
        Select an analog for the scenario.

        Raises:
            UnresolvableAnalogError: the generated analog ID is unknown
        """
        if not self.generative_enabled or not question:
            return self.select_static(scenario_id)

        snapshot = await self._market_snapshot()
        outcome = await attempt_structured(
            self._client,
            build_analog_prompt(scenario_id, question, snapshot),
            AnalogSelectionOutput,
            system=ANALOG_INSTRUCTIONS,
            timeout=self._settings.generative_timeout,
            max_tokens=self._settings.generative_max_tokens,
            label="analog",
        )
        if isinstance(outcome, Err):
            logger.info(f"Generative analog selection failed ({outcome.failure}), using static table")
            return self.select_static(scenario_id)

        output = outcome.value
        analog_id = normalize_analog_id(output.analog_id, self._synonyms)
        if analog_id.value != output.analog_id:
            logger.info(f"Normalized analog ID {output.analog_id!r} -> {analog_id.value}")

        return AnalogSelection(
            analog=HISTORICAL_ANALOGS[analog_id],
            method=ClassificationMethod.GENERATIVE,
            match=AnalogMatch(
                similarity=output.similarity,
                matching_factors=output.matching_factors,
                key_events=output.key_events,
                reasoning=output.reasoning,
            ),
        )

    async def _market_snapshot(self) -> dict[str, float]:
        """Latest closes for the prompt; missing indicators are left out."""
        if self._market_data is None or not hasattr(self._market_data, "fetch_latest_close"):
            return {}

        async def _latest(ticker: str) -> float | None:
            try:
                return await self._market_data.fetch_latest_close(ticker)
            except MarketDataError as e:
                logger.debug(f"Snapshot indicator {ticker} unavailable: {e.message}")
                return None

        names = list(SNAPSHOT_TICKERS)
        values = await asyncio.gather(*(_latest(SNAPSHOT_TICKERS[n]) for n in names))
        return {name: value for name, value in zip(names, values) if value is not None}
