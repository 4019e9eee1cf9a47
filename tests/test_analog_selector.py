"""
Tests for historical analog selection and analog ID normalization.
"""

import pytest

from fakes import FakeGenerativeClient, FakeMarketData, as_json
from kronos.core.exceptions import GenerationError, ScoringStep, UnresolvableAnalogError
from kronos.scoring.analog_selector import (
    AnalogSelector,
    build_synonym_table,
    normalize_analog_id,
)
from kronos.scoring.schemas import AnalogId, ClassificationMethod, ScenarioId


def _analog_reply(analog_id: str, **overrides) -> str:
    payload = {
        "analogId": analog_id,
        "analogName": "Dot-com bust",
        "period": "2000-2002",
        "similarity": 78,
        "matchingFactors": ["Stretched valuations", "Narrow leadership", "Speculative flows"],
        "keyEvents": ["Nasdaq peak", "Earnings recession", "Fed cuts"],
        "reasoning": "Concentrated tech leadership resembles 2000.",
    }
    payload.update(overrides)
    return as_json(payload)


# =============================================================================
# Normalization
# =============================================================================


class TestNormalizeAnalogId:
    """Tests for normalize_analog_id."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("COVID_CRASH", AnalogId.COVID_CRASH),
            ("covid_crash", AnalogId.COVID_CRASH),
            ("  Dot-Com Bust ", AnalogId.DOT_COM_BUST),
            ("DOTCOM", AnalogId.DOT_COM_BUST),
            ("COVID-19", AnalogId.COVID_CRASH),
            ("COVID_CRASH_2020", AnalogId.COVID_CRASH),
            ("RATE_SHOCK_2022", AnalogId.RATE_SHOCK),
            ("STAGFLATION_1973", AnalogId.STAGFLATION),
            ("stagflation 70s", AnalogId.STAGFLATION),
            ("DOT_COM_2000", AnalogId.DOT_COM_BUST),
        ],
    )
    def test_known_variants(self, raw, expected):
        assert normalize_analog_id(raw) == expected

    def test_unknown_id_raises(self):
        """Near misses are never guessed."""
        with pytest.raises(UnresolvableAnalogError) as exc_info:
            normalize_analog_id("GLOBAL_FINANCIAL_CRISIS_2008")
        assert exc_info.value.step == ScoringStep.ANALOG
        assert exc_info.value.details["normalized_id"] == "GLOBAL_FINANCIAL_CRISIS_2008"

    def test_configured_synonyms_extend_defaults(self):
        table = build_synonym_table({"gfc": "covid_crash"})
        assert normalize_analog_id("GFC_2008", table) == AnalogId.COVID_CRASH
        assert normalize_analog_id("DOTCOM", table) == AnalogId.DOT_COM_BUST

    @pytest.mark.parametrize("raw", ["Great Lockdown", "great-lockdown", "GREAT_LOCKDOWN_2020"])
    def test_configured_synonym_with_separators(self, raw):
        table = build_synonym_table({"Great Lockdown": "covid crash"})
        assert normalize_analog_id(raw, table) == AnalogId.COVID_CRASH

    def test_configured_synonym_to_unknown_analog_ignored(self):
        table = build_synonym_table({"GFC": "LEHMAN"})
        assert "GFC" not in table


# =============================================================================
# Selector
# =============================================================================


class TestAnalogSelector:
    """Tests for AnalogSelector."""

    @pytest.mark.asyncio
    async def test_static_mapping_without_client(self, test_settings):
        selector = AnalogSelector(settings=test_settings)

        selection = await selector.select(ScenarioId.MARKET_VOLATILITY)

        assert selection.analog.id == AnalogId.COVID_CRASH
        assert selection.method == ClassificationMethod.STATIC
        assert selection.match is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "scenario,analog",
        [
            (ScenarioId.AI_SUPERCYCLE, AnalogId.DOT_COM_BUST),
            (ScenarioId.CASH_VS_BONDS, AnalogId.RATE_SHOCK),
            (ScenarioId.TECH_CONCENTRATION, AnalogId.DOT_COM_BUST),
            (ScenarioId.INFLATION_HEDGE, AnalogId.STAGFLATION),
            (ScenarioId.RECESSION_RISK, AnalogId.STAGFLATION),
        ],
    )
    async def test_every_scenario_has_static_analog(self, test_settings, scenario, analog):
        selection = await AnalogSelector(settings=test_settings).select(scenario)
        assert selection.analog.id == analog

    @pytest.mark.asyncio
    async def test_generative_selection_with_metadata(self, test_settings):
        client = FakeGenerativeClient(_analog_reply("DOT_COM_BUST_2000"))
        selector = AnalogSelector(client=client, settings=test_settings)

        selection = await selector.select(ScenarioId.AI_SUPERCYCLE, "Is AI a bubble?")

        assert selection.analog.id == AnalogId.DOT_COM_BUST
        assert selection.method == ClassificationMethod.GENERATIVE
        assert selection.match.similarity == 78
        assert len(selection.match.matching_factors) == 3
        assert selection.match.key_events[0] == "Nasdaq peak"
        assert "Is AI a bubble?" in client.prompts[0]

    @pytest.mark.asyncio
    async def test_unresolvable_generated_id_is_fatal(self, test_settings):
        client = FakeGenerativeClient(_analog_reply("GREAT_DEPRESSION"))
        selector = AnalogSelector(client=client, settings=test_settings)

        with pytest.raises(UnresolvableAnalogError):
            await selector.select(ScenarioId.RECESSION_RISK, "Will we see a depression?")

    @pytest.mark.asyncio
    async def test_too_few_matching_factors_falls_back(self, test_settings):
        """Schema violations degrade to the static table."""
        client = FakeGenerativeClient(_analog_reply("STAGFLATION", matchingFactors=["Oil"]))
        selector = AnalogSelector(client=client, settings=test_settings)

        selection = await selector.select(ScenarioId.INFLATION_HEDGE, "Is inflation coming back?")

        assert selection.analog.id == AnalogId.STAGFLATION
        assert selection.method == ClassificationMethod.STATIC

    @pytest.mark.asyncio
    async def test_provider_error_falls_back(self, test_settings):
        client = FakeGenerativeClient(GenerationError("Model refused"))
        selector = AnalogSelector(client=client, settings=test_settings)

        selection = await selector.select(ScenarioId.CASH_VS_BONDS, "Should I hold cash or bonds?")

        assert selection.analog.id == AnalogId.RATE_SHOCK
        assert selection.method == ClassificationMethod.STATIC

    @pytest.mark.asyncio
    async def test_market_snapshot_in_prompt(self, test_settings):
        """Available indicators are added; missing ones are left out."""
        client = FakeGenerativeClient(_analog_reply("COVID"))
        market = FakeMarketData(latest={"^VIX": 31.5, "^GSPC": 5100.25})
        selector = AnalogSelector(client=client, market_data=market, settings=test_settings)

        selection = await selector.select(ScenarioId.MARKET_VOLATILITY, "How bad is this volatility?")

        assert selection.analog.id == AnalogId.COVID_CRASH
        prompt = client.prompts[0]
        assert "VIX: 31.50" in prompt
        assert "S&P 500: 5,100.25" in prompt
        assert "10Y Treasury yield" not in prompt

    @pytest.mark.asyncio
    async def test_no_question_skips_generative_tier(self, test_settings):
        client = FakeGenerativeClient(_analog_reply("DOT_COM_BUST"))
        selector = AnalogSelector(client=client, settings=test_settings)

        selection = await selector.select(ScenarioId.MARKET_VOLATILITY)

        assert selection.analog.id == AnalogId.COVID_CRASH
        assert selection.method == ClassificationMethod.STATIC
        assert client.prompts == []
