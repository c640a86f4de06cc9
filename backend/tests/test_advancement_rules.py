"""Tournament advancement rules parsing and defaults."""
from gbv.services.advancement_rules import (
    DEFAULT_ADVANCE_COUNT,
    DEFAULT_TIEBREAKERS,
    AdvancementRules,
    load_advancement_rules,
)


def test_missing_rules_use_defaults():
    rules = load_advancement_rules(None)
    assert rules.uses_default_tiebreakers
    assert rules.tiebreaker_order() == DEFAULT_TIEBREAKERS
    assert rules.advance_count_for(4) == DEFAULT_ADVANCE_COUNT


def test_configured_rules():
    rules = load_advancement_rules(
        {
            "tiebreakers": ["point_diff", "head_to_head"],
            "pools": [{"pool_size": 5, "advance_count": 3}],
            "bracket_format": "single_elimination",
        }
    )
    assert not rules.uses_default_tiebreakers
    assert rules.tiebreaker_order() == ["point_diff", "head_to_head"]
    assert rules.advance_counts() == {5: 3}
    assert rules.advance_count_for(5) == 3
    assert rules.advance_count_for(4) == 2


def test_invalid_rules_fall_back_to_defaults(caplog):
    rules = load_advancement_rules({"tiebreakers": ["coin_flip"]})
    assert rules == AdvancementRules()
    assert "Ignoring invalid advancement_rules" in caplog.text


def test_tiebreaker_order_returns_a_copy():
    rules = AdvancementRules()
    order = rules.tiebreaker_order()
    order.clear()
    assert rules.tiebreaker_order() == DEFAULT_TIEBREAKERS
