from __future__ import annotations

from dataclasses import replace

import pytest

from endocrine_er.scenarios import (
    KEY_TAKEAWAYS,
    OPTIONS_PER_SCENARIO,
    SCENARIOS,
    Difficulty,
    validate_scenarios,
)


def test_store_holds_ten_cases_with_unique_ids() -> None:
    assert len(SCENARIOS) == 10
    assert [s.scenario_id for s in SCENARIOS] == list(range(1, 11))


def test_every_case_offers_four_options_including_the_correct_one() -> None:
    for s in SCENARIOS:
        assert len(s.options) == OPTIONS_PER_SCENARIO
        assert len(set(s.options)) == OPTIONS_PER_SCENARIO
        assert s.correct in s.options
        assert s.reason
        assert isinstance(s.difficulty, Difficulty)

    validate_scenarios(SCENARIOS)


def test_known_answers() -> None:
    by_title = {s.title: s for s in SCENARIOS}
    assert by_title["Thyroid Storm in Pregnancy"].correct == "Propylthiouracil (PTU)"
    assert by_title["Myxedema Coma"].correct == "Liothyronine (T3)"
    assert by_title["Edema Side Effects"].correct == "Dexamethasone"
    assert len(KEY_TAKEAWAYS) == 4


def test_validate_rejects_correct_option_not_offered() -> None:
    bad = replace(SCENARIOS[0], correct="Aspirin")
    with pytest.raises(ValueError, match="not offered"):
        validate_scenarios([bad])


def test_validate_rejects_wrong_option_count_and_duplicates() -> None:
    three = replace(SCENARIOS[1], options=SCENARIOS[1].options[:3])
    with pytest.raises(ValueError, match="must have 4 options"):
        validate_scenarios([three])

    dup_opts = replace(SCENARIOS[1], options=("A", "A", "B", "Dexamethasone"))
    with pytest.raises(ValueError, match="duplicate options"):
        validate_scenarios([dup_opts])

    with pytest.raises(ValueError, match="duplicate scenario id"):
        validate_scenarios([SCENARIOS[0], SCENARIOS[0]])

    with pytest.raises(ValueError):
        validate_scenarios([])
