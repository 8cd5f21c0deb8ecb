"""Tests for race time prediction module."""

from __future__ import annotations

from periodizer.services.race_predictor import (
    RACE_DISTANCES_M,
    RacePrediction,
    format_time,
    predict_all_distances,
    predict_race_time,
    race_pace_sec_per_km,
)
from periodizer.services.vdot import vdot_from_performance


def test_predict_5k_vdot_50():
    # VDOT 50 → ~19:30-20:30 5K
    predicted = predict_race_time(50, 5000)
    assert 19 * 60 < predicted < 21 * 60


def test_predict_marathon_vdot_50():
    predicted = predict_race_time(50, 42195)
    assert 2.75 * 3600 < predicted < 4 * 3600


def test_prediction_consistent_with_vdot_equation():
    predicted = predict_race_time(45, 10000)
    assert abs(vdot_from_performance(10000, predicted) - 45) < 0.5


def test_longer_races_take_longer():
    times = [predict_race_time(45, d) for d in (5000, 10000, 21097.5, 42195)]
    assert times == sorted(times)


def test_predict_invalid():
    assert predict_race_time(0, 5000) == 0.0
    assert predict_race_time(50, 0) == 0.0


def test_race_pace_for_goal():
    ten_k = race_pace_sec_per_km(45, "improve_10k")
    marathon = race_pace_sec_per_km(45, "marathon")
    assert ten_k is not None and marathon is not None
    assert ten_k < marathon


def test_race_pace_general_fitness_is_none():
    assert race_pace_sec_per_km(45, "general_fitness") is None


def test_format_time():
    assert format_time(3725) == "1:02:05"
    assert format_time(1200) == "20:00"


def test_predict_all_distances():
    results = predict_all_distances(50)
    assert set(results) == set(RACE_DISTANCES_M)
    five_k = results["5K"]
    assert isinstance(five_k, RacePrediction)
    assert five_k.method == "vdot"
    assert five_k.vdot_used == 50
    assert ":" in five_k.predicted_display
