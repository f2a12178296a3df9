from __future__ import annotations
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional
import copy
import logging
import math
import random

from .config import ScenarioConfig
from .core import Event, EventLog, HistorySample, ServiceNode, SimulationState
from .factory import RosterFactory
from .metrics import MetricsStore
from .router import PolicyRunner, round_robin_runner, adaptive_runner

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))

def apply_failure_overrides(nodes: List[ServiceNode], overrides: Dict[str, bool]) -> None:
    # a missing key leaves the flag alone; it does not mean "healthy"
    for node in nodes:
        if node.id in overrides:
            node.failed = bool(overrides[node.id])

def history_sample(state: SimulationState, clock: Clock) -> HistorySample:
    trad = state.traditional.stats
    neuro = state.adaptive.stats
    return HistorySample(
        timestamp=clock().strftime("%M:%S"),
        trad_latency=round_half_up(trad.avg_latency),
        neuro_latency=round_half_up(neuro.avg_latency),
        trad_throughput=round_half_up(trad.throughput),
        neuro_throughput=round_half_up(neuro.throughput),
    )

def tick_simulation(
    state: SimulationState,
    failure_overrides: Optional[Dict[str, bool]] = None,
    cfg: Optional[ScenarioConfig] = None,
    rng: Optional[random.Random] = None,
    clock: Optional[Clock] = None,
    runners: Optional[tuple[PolicyRunner, PolicyRunner]] = None,
) -> SimulationState:
    """
    Advance one tick and return the next state. The input is deep-copied first
    and never touched, so callers can keep or diff earlier snapshots.

    Ticks on one state lineage must be serialised by the caller.
    """
    cfg = cfg or ScenarioConfig()
    rng = rng or random.Random()
    clock = clock or datetime.now
    overrides = failure_overrides or {}
    trad_runner, neuro_runner = runners or (round_robin_runner(cfg), adaptive_runner(cfg))

    new_state = copy.deepcopy(state)
    new_state.elapsed_time += 1

    apply_failure_overrides(new_state.traditional.nodes, overrides)
    apply_failure_overrides(new_state.adaptive.nodes, overrides)

    trad_runner.run(new_state.traditional, rng, tick=new_state.elapsed_time)
    neuro_runner.run(new_state.adaptive, rng, tick=new_state.elapsed_time)

    stride = max(1, int(cfg.history_stride or 1))
    if new_state.elapsed_time % stride == 0:
        keep = max(0, int(cfg.history_maxlen) - 1)
        recent = new_state.history[-keep:] if keep > 0 else []
        new_state.history = recent + [history_sample(new_state, clock)]

    return new_state


class SimulationEngine:
    """
    Owns one state lineage: the seeded RNG, the sticky failure-override map,
    the run flag and the per-tick metrics. The dashboard (or any timer) calls
    `drive()` once per interval; `step()` advances unconditionally.
    """
    def __init__(self, cfg: Optional[ScenarioConfig] = None, seed: int = 1,
                 roster: Optional[List[ServiceNode]] = None,
                 clock: Optional[Clock] = None) -> None:
        self.cfg = cfg or ScenarioConfig()
        self.seed = seed
        self.clock: Clock = clock or datetime.now
        self.factory = RosterFactory(roster)
        self.runners = (round_robin_runner(self.cfg), adaptive_runner(self.cfg))
        self.log = EventLog(maxlen=self.cfg.event_log_maxlen)
        self._bootstrap()

    def _bootstrap(self) -> None:
        self.rng = random.Random(self.seed)
        self.state: SimulationState = self.factory.build_state()
        self.failure_overrides: Dict[str, bool] = {}
        self.metrics = MetricsStore()

    @property
    def tick(self) -> int:
        return self.state.elapsed_time

    @property
    def is_running(self) -> bool:
        return self.state.is_running

    # --- run flag ---------------------------------------------------------
    def start(self) -> None:
        if self.state.is_running:
            return
        self.state = replace(self.state, is_running=True)
        self.log.add(Event(self.tick, "RUN_STARTED"))

    def pause(self) -> None:
        if not self.state.is_running:
            return
        self.state = replace(self.state, is_running=False)
        self.log.add(Event(self.tick, "RUN_PAUSED"))

    def toggle_running(self) -> bool:
        if self.state.is_running:
            self.pause()
        else:
            self.start()
        return self.state.is_running

    # --- chaos control ----------------------------------------------------
    def set_failure(self, node_id: str, failed: bool) -> None:
        self.failure_overrides = {**self.failure_overrides, node_id: bool(failed)}
        event_type = "NODE_FAILED" if failed else "NODE_RESTORED"
        self.log.add(Event(self.tick, event_type, node_id=node_id))
        logger.debug("failure override %s=%s at tick %d", node_id, failed, self.tick)

    def toggle_failure(self, node_id: str) -> bool:
        failed = not self.failure_overrides.get(node_id, False)
        self.set_failure(node_id, failed)
        return failed

    def clear_failures(self) -> None:
        self.failure_overrides = {}

    # --- ticking ----------------------------------------------------------
    def step(self, n_ticks: int = 1) -> SimulationState:
        for _ in range(n_ticks):
            self.state = tick_simulation(
                self.state,
                self.failure_overrides,
                cfg=self.cfg,
                rng=self.rng,
                clock=self.clock,
                runners=self.runners,
            )
            self.metrics.record(self.state, self.cfg)
        return self.state

    def drive(self) -> bool:
        """Timer callback: advances one tick only while the run flag is set."""
        if not self.state.is_running:
            return False
        self.step(1)
        return True

    def reset(self) -> SimulationState:
        # also drops failure overrides and reseeds, so a reset run replays exactly
        self._bootstrap()
        self.log.add(Event(0, "RESET"))
        return self.state
