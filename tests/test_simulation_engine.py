from routesim.engine import SimulationEngine
from routesim.factory import initial_state
from tests._support.rng_helpers import fixed_clock


def make_engine(seed: int = 1) -> SimulationEngine:
    return SimulationEngine(seed=seed, clock=fixed_clock)


def test_drive_only_advances_while_running():
    engine = make_engine()
    assert engine.drive() is False
    assert engine.tick == 0

    engine.start()
    assert engine.drive() is True
    assert engine.drive() is True
    assert engine.tick == 2

    engine.pause()
    snapshot = engine.state
    assert engine.drive() is False
    assert engine.state is snapshot

    # resuming continues from the paused snapshot
    engine.start()
    engine.drive()
    assert engine.tick == 3
    assert engine.state.traditional.stats.total_requests == 3


def test_toggle_running_flips_flag_and_logs():
    engine = make_engine()
    assert engine.toggle_running() is True
    assert engine.toggle_running() is False
    assert [e.event_type for e in engine.log.tail()] == ["RUN_STARTED", "RUN_PAUSED"]


def test_step_advances_even_when_paused():
    engine = make_engine()
    engine.step(4)
    assert engine.tick == 4
    assert engine.is_running is False


def test_failure_toggle_is_sticky_across_ticks():
    engine = make_engine()
    assert engine.toggle_failure("s2") is True
    engine.step(6)
    assert engine.state.traditional.nodes[1].failed is True
    assert engine.state.adaptive.nodes[1].failed is True

    assert engine.toggle_failure("s2") is False
    engine.step(1)
    assert engine.state.traditional.nodes[1].failed is False
    events = [(e.event_type, e.node_id) for e in engine.log.tail()]
    assert events == [("NODE_FAILED", "s2"), ("NODE_RESTORED", "s2")]


def test_reset_matches_fresh_state_and_clears_overrides():
    engine = make_engine()
    engine.start()
    engine.set_failure("s1", True)
    for _ in range(10):
        engine.drive()

    state = engine.reset()
    assert state == initial_state()
    assert engine.failure_overrides == {}
    assert engine.metrics.tick_rows == []

    engine.step(5)
    assert not any(n.failed for n in engine.state.traditional.nodes)


def test_reset_replays_the_same_run():
    engine = make_engine(seed=9)
    engine.set_failure("s4", True)
    engine.step(30)
    first = engine.state

    engine.reset()
    engine.set_failure("s4", True)
    engine.step(30)
    assert engine.state == first


def test_prior_snapshots_stay_untouched():
    engine = make_engine()
    engine.step(3)
    held = engine.state
    loads = [n.load for n in held.adaptive.nodes]
    engine.step(5)
    assert [n.load for n in held.adaptive.nodes] == loads
    assert held.elapsed_time == 3


def test_metrics_recorded_per_tick():
    engine = make_engine()
    engine.step(8)
    df = engine.metrics.tick_df()
    assert len(df) == 8
    assert list(df["tick"]) == list(range(1, 9))
    assert df["trad_total_requests"].iloc[-1] == 8


def test_clear_failures_stops_new_overrides_but_keeps_flags():
    engine = make_engine()
    engine.set_failure("s3", True)
    engine.step(2)
    engine.clear_failures()
    engine.step(2)
    # an empty override map means "no change", so s3 stays down
    assert engine.state.adaptive.nodes[2].failed is True
