"""Tests for phase selection, week allocation and block dating."""

from __future__ import annotations

import logging
from datetime import date, timedelta

import pytest

from periodizer.models import GOALS
from periodizer.services.methodology import METHODOLOGIES, get_methodology
from periodizer.services.periodization import (
    PhaseAllocation,
    allocate_phase_weeks,
    build_blocks,
    get_goal,
    plan_dates,
    select_phases,
)
from periodizer.validators import ConfigurationError

START = date(2026, 1, 5)


def _weeks(allocations):
    return {a.phase: a.weeks for a in allocations}


def test_ten_k_daniels_twelve_weeks():
    alloc = allocate_phase_weeks(12, "improve_10k", get_methodology("daniels"))
    assert [a.phase for a in alloc] == ["base", "build", "peak", "taper"]
    assert _weeks(alloc) == {"base": 4, "build": 5, "peak": 2, "taper": 1}


@pytest.mark.parametrize("methodology", sorted(METHODOLOGIES))
@pytest.mark.parametrize("goal", GOALS)
def test_allocation_always_sums_to_total(goal, methodology):
    profile = METHODOLOGIES[methodology]
    for total in range(1, 53):
        alloc = allocate_phase_weeks(total, goal, profile)
        assert sum(a.weeks for a in alloc) == total
        assert all(a.weeks >= 1 for a in alloc)
        assert alloc[0].phase == "base"


def test_short_plan_scales_down(caplog):
    with caplog.at_level(logging.WARNING):
        alloc = allocate_phase_weeks(7, "improve_10k", get_methodology("daniels"))
    assert _weeks(alloc) == {"base": 3, "build": 3, "taper": 1}
    assert "scaling phases uniformly" in caplog.text


def test_single_week_plan():
    alloc = allocate_phase_weeks(1, "marathon", get_methodology("daniels"))
    assert alloc == (PhaseAllocation("base", 1),)


def test_compression_takes_from_lower_priority(caplog):
    with caplog.at_level(logging.WARNING):
        alloc = allocate_phase_weeks(10, "improve_10k", get_methodology("daniels"))
    assert _weeks(alloc) == {"base": 4, "build": 3, "peak": 2, "taper": 1}
    assert "Compressed phases" in caplog.text


def test_long_plan_extends_base(caplog):
    with caplog.at_level(logging.WARNING):
        alloc = allocate_phase_weeks(52, "improve_5k", get_methodology("daniels"))
    weeks = _weeks(alloc)
    assert weeks["base"] > 12
    assert sum(weeks.values()) == 52
    assert "Extended base" in caplog.text


def test_taper_capped_by_goal():
    alloc = allocate_phase_weeks(30, "improve_5k", get_methodology("lydiard"))
    assert _weeks(alloc)["taper"] == 1
    marathon = allocate_phase_weeks(30, "marathon", get_methodology("lydiard"))
    assert 1 <= _weeks(marathon)["taper"] <= 3


def test_select_phases_general_fitness_has_no_race_phases():
    assert select_phases(12, "general_fitness") == ["base", "build"]


def test_select_phases_recovery_for_long_plans():
    phases = select_phases(24, "marathon")
    assert phases == ["base", "build", "recovery", "peak", "taper"]


def test_select_phases_injury_history_leads_with_recovery():
    assert select_phases(16, "half_marathon", ("shin splints",))[0] == "recovery"
    assert "recovery" not in select_phases(6, "improve_5k", ("shin splints",))


def test_plan_dates_default_weeks():
    weeks, end = plan_dates(START, None, "marathon")
    assert weeks == get_goal("marathon").default_weeks
    assert end == START + timedelta(days=7 * weeks - 1)


def test_plan_dates_partial_week_dropped():
    weeks, end = plan_dates(START, START + timedelta(weeks=12, days=3), "improve_10k")
    assert weeks == 12
    assert end == START + timedelta(days=83)


def test_plan_dates_invalid():
    with pytest.raises(ConfigurationError):
        plan_dates(START, START, "marathon")
    with pytest.raises(ConfigurationError):
        plan_dates(START, START + timedelta(days=3), "marathon")
    with pytest.raises(ConfigurationError):
        plan_dates(START, START + timedelta(weeks=60), "marathon")


def test_get_goal_unknown():
    with pytest.raises(ConfigurationError):
        get_goal("triathlon")


def test_build_blocks_are_contiguous():
    profile = get_methodology("daniels")
    alloc = allocate_phase_weeks(12, "improve_10k", profile)
    blocks = build_blocks(START, alloc, profile)
    assert blocks[0].start_date == START
    assert blocks[-1].end_date == START + timedelta(days=83)
    for prev, nxt in zip(blocks, blocks[1:]):
        assert nxt.start_date == prev.end_date + timedelta(days=1)
    assert blocks[0].methodology_focus == "aerobic"
    assert "Aerobic capacity" in blocks[0].focus_areas
    assert blocks[0].microcycles == ()
