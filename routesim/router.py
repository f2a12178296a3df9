from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional
import logging
import random

import numpy as np

from .config import ScenarioConfig, PolicyConfig
from .core import ServiceNode, PolicyState, next_latency, format_weights

logger = logging.getLogger(__name__)

@dataclass
class TickOutcome:
    index: int
    node_id: str
    latency: float
    success: float
    failed: bool


# -----------------------------
# Selection strategies
# -----------------------------
class RoundRobinSelector:
    """Advances the policy cursor by one every tick. Health is never consulted."""
    def select(self, policy: PolicyState, rng: random.Random) -> int:
        idx = (policy.current_path_index + 1) % len(policy.nodes)
        policy.current_path_index = idx
        return idx

class WinnerTakeAllSelector:
    """
    Weighted draw over exp(weight * sharpness). A large sharpness turns small
    weight gaps into large probability gaps, so a punished node drops out fast.
    """
    def __init__(self, sharpness: float = 12.0) -> None:
        self.sharpness = sharpness

    def scores(self, nodes: List[ServiceNode]) -> np.ndarray:
        weights = np.array([n.weight for n in nodes], dtype=float)
        return np.exp(weights * self.sharpness)

    def select(self, policy: PolicyState, rng: random.Random) -> int:
        nodes = policy.nodes
        if not nodes:
            return 0
        scores = self.scores(nodes)
        r = rng.random() * float(scores.sum())
        for i, score in enumerate(scores):
            r -= float(score)
            if r <= 0:
                return i
        # float residue left r > 0 after the last node
        return len(nodes) - 1


# -----------------------------
# Learning hooks
# -----------------------------
class NoLearning:
    def apply(self, nodes: List[ServiceNode], winner_index: int) -> None:
        return None

class StdpLearningRule:
    """
    Local reward rule: the winner moves by (target - latency) scaled by the
    learning rate, failed nodes take a fixed large negative delta, everyone else
    decays toward the floor. Weights are then renormalised to sum to 1.
    """
    def __init__(self, cfg: ScenarioConfig) -> None:
        self.cfg = cfg

    def delta(self, node: ServiceNode) -> float:
        if node.failed:
            return self.cfg.failure_delta
        return self.cfg.target_latency - node.latency

    def apply(self, nodes: List[ServiceNode], winner_index: int) -> None:
        cfg = self.cfg
        for idx, node in enumerate(nodes):
            if idx == winner_index:
                step = self.delta(node) * cfg.delta_scale * cfg.learning_rate
                node.weight = max(cfg.min_weight, min(cfg.max_weight, node.weight + step))
            else:
                node.weight = max(cfg.min_weight, node.weight * cfg.unselected_decay)
        normalized = renormalize(
            [n.weight for n in nodes], cfg.min_weight, cfg.max_weight
        )
        for node, w in zip(nodes, normalized):
            node.weight = w

def renormalize(weights: List[float], lower: float, upper: float) -> List[float]:
    """
    Scale weights to sum to 1. Any weight the division pushes outside
    [lower, upper] is pinned to that bound and the remaining mass is shared
    proportionally by the rest, so both the sum and the bounds hold. A single
    weight is always 1.0, since no bound can be met without breaking the sum.
    """
    if len(weights) == 1:
        return [1.0]
    total = sum(weights)
    if total <= 0:
        return [1.0 / len(weights)] * len(weights) if weights else []
    scaled = [w / total for w in weights]
    pinned: dict[int, float] = {}
    while True:
        free = [i for i in range(len(scaled)) if i not in pinned]
        if not free:
            break
        mass = 1.0 - sum(pinned.values())
        free_total = sum(weights[i] for i in free)
        for i in free:
            scaled[i] = weights[i] * mass / free_total
        out = [i for i in free if scaled[i] < lower or scaled[i] > upper]
        if not out:
            break
        for i in out:
            pinned[i] = lower if scaled[i] < lower else upper
            scaled[i] = pinned[i]
    return scaled


# -----------------------------
# Policy runner
# -----------------------------
class PolicyRunner:
    """
    One routing step for one policy: pick a node, update loads and latencies,
    run the learning hook, fold the outcome into the rolling stats.
    """
    def __init__(self, name: str, selector, learning, policy_cfg: PolicyConfig, cfg: ScenarioConfig) -> None:
        self.name = name
        self.selector = selector
        self.learning = learning
        self.policy_cfg = policy_cfg
        self.cfg = cfg

    def _update_nodes(self, nodes: List[ServiceNode], selected: int, rng: random.Random) -> None:
        cfg = self.cfg
        for idx, node in enumerate(nodes):
            is_selected = idx == selected
            node.active = is_selected
            if is_selected:
                node.load = min(cfg.max_load, node.load + cfg.load_step)
            else:
                node.load = max(0.0, node.load - cfg.load_decay)
            node.latency = next_latency(
                node,
                cfg.volatility,
                rng,
                cfg.base_latency,
                failure_latency=cfg.failure_latency,
                min_latency=cfg.min_latency,
                load_scale=cfg.load_latency_scale,
            )

    def success_signal(self, node: ServiceNode) -> float:
        if node.failed:
            return 0.0
        if node.load > self.policy_cfg.overload_threshold:
            return self.policy_cfg.overload_success
        return 1.0

    def _update_stats(self, policy: PolicyState, node: ServiceNode, success: float) -> None:
        cfg = self.cfg
        stats = policy.stats
        stats.total_requests += 1
        stats.success_rate = (stats.success_rate * cfg.success_decay) + (success * 100.0 * (1.0 - cfg.success_decay))
        stats.success_rate = max(0.0, min(100.0, stats.success_rate))
        stats.avg_latency = (stats.avg_latency * cfg.latency_decay) + (node.latency * (1.0 - cfg.latency_decay))
        if node.failed:
            current = 0.0
        else:
            current = min(cfg.max_throughput, cfg.max_throughput / max(1.0, stats.avg_latency)) * self.policy_cfg.throughput_multiplier
        stats.throughput = (stats.throughput * cfg.throughput_decay) + (current * (1.0 - cfg.throughput_decay))

    def run(self, policy: PolicyState, rng: random.Random, tick: Optional[int] = None) -> TickOutcome:
        """Mutates `policy` in place; callers hand in a private copy."""
        nodes = policy.nodes
        selected = self.selector.select(policy, rng)
        self._update_nodes(nodes, selected, rng)
        self.learning.apply(nodes, selected)

        node = nodes[selected]
        policy.last_winner_id = node.id
        success = self.success_signal(node)
        self._update_stats(policy, node, success)

        if self.cfg.debug_routing and logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "[ROUTE] tick=%s policy=%s winner=%s failed=%s latency=%.1f success=%.2f weights={ %s }",
                tick,
                self.name,
                node.id,
                node.failed,
                node.latency,
                success,
                format_weights(nodes),
            )
        return TickOutcome(index=selected, node_id=node.id, latency=node.latency,
                           success=success, failed=node.failed)

def round_robin_runner(cfg: ScenarioConfig) -> PolicyRunner:
    return PolicyRunner("traditional", RoundRobinSelector(), NoLearning(), cfg.traditional, cfg)

def adaptive_runner(cfg: ScenarioConfig) -> PolicyRunner:
    return PolicyRunner(
        "adaptive",
        WinnerTakeAllSelector(cfg.selection_sharpness),
        StdpLearningRule(cfg),
        cfg.adaptive,
        cfg,
    )
