import pytest

from routesim.config import ScenarioConfig
from routesim.core import HistorySample, RoutingStats
from routesim.engine import SimulationEngine
from routesim.factory import initial_state
from routesim.metrics import format_elapsed, history_df, summarize
from tests._support.rng_helpers import fixed_clock


def test_p95_is_fixed_multiple_of_average():
    cfg = ScenarioConfig()
    stats = RoutingStats(avg_latency=100.0)
    assert stats.p95_latency(cfg.traditional.p95_multiplier) == pytest.approx(180.0)
    assert stats.p95_latency(cfg.adaptive.p95_multiplier) == pytest.approx(120.0)


def test_summary_is_zero_until_history_is_long_enough():
    state = initial_state()
    state.traditional.stats.avg_latency = 200.0
    state.adaptive.stats.avg_latency = 50.0
    state.traditional.stats.success_rate = 80.0
    state.adaptive.stats.success_rate = 97.5
    summary = summarize(state)
    assert summary["latency_improvement_pct"] == 0.0
    assert summary["throughput_gain_pct"] == 0.0
    assert summary["success_diff_pct"] == pytest.approx(17.5)


def test_summary_compares_policies():
    state = initial_state()
    state.history = [HistorySample("00:00", 0, 0, 0, 0) for _ in range(6)]
    state.traditional.stats.avg_latency = 200.0
    state.adaptive.stats.avg_latency = 50.0
    state.traditional.stats.throughput = 100.0
    state.adaptive.stats.throughput = 250.0
    summary = summarize(state)
    assert summary["latency_improvement_pct"] == pytest.approx(75.0)
    assert summary["throughput_gain_pct"] == pytest.approx(150.0)
    assert summary["trad_p95_latency"] == pytest.approx(360.0)
    assert summary["neuro_p95_latency"] == pytest.approx(60.0)


def test_summary_guards_small_denominators():
    state = initial_state()
    state.history = [HistorySample("00:00", 0, 0, 0, 0) for _ in range(6)]
    state.adaptive.stats.throughput = 5.0
    summary = summarize(state)
    assert summary["throughput_gain_pct"] == pytest.approx(400.0)


def test_history_df_columns():
    engine = SimulationEngine(seed=3, clock=fixed_clock)
    assert history_df(engine.state).empty
    engine.step(6)
    df = history_df(engine.state)
    assert len(df) == 3
    assert list(df.columns) == [
        "timestamp", "trad_latency", "neuro_latency", "trad_throughput", "neuro_throughput",
    ]


def test_selection_share_round_robin_is_uniform():
    engine = SimulationEngine(seed=3, clock=fixed_clock)
    engine.step(40)
    share = engine.metrics.selection_share("traditional")
    assert share.to_dict() == {"s1": 0.25, "s2": 0.25, "s3": 0.25, "s4": 0.25}
    adaptive = engine.metrics.selection_share("adaptive")
    assert adaptive.sum() == pytest.approx(1.0)


def test_format_elapsed():
    assert format_elapsed(0) == "00:00:00"
    assert format_elapsed(3725) == "01:02:05"
    assert format_elapsed(-4) == "00:00:00"
