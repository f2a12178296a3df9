from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Literal
from collections import deque
import math
import random

NodeKind = Literal["auth", "data", "cache", "compute"]

def format_weights(nodes: List["ServiceNode"]) -> str:
    if not nodes:
        return "(empty)"
    return ", ".join(f"{n.id}:{n.weight:.4f}" for n in nodes)

# -----------------------------
# Events
# -----------------------------
@dataclass
class Event:
    tick: int
    event_type: str
    node_id: Optional[str] = None

class EventLog:
    def __init__(self, maxlen: Optional[int] = None) -> None:
        self.events = deque(maxlen=maxlen)

    def add(self, e: Event) -> None:
        self.events.append(e)

    def tail(self, n: int = 200) -> List[Event]:
        if n <= 0:
            return []
        if n >= len(self.events):
            return list(self.events)
        return list(self.events)[-n:]


# -----------------------------
# Nodes / stats
# -----------------------------
@dataclass
class ServiceNode:
    id: str
    name: str
    kind: NodeKind
    load: float = 0.0
    latency: float = 0.0
    weight: float = 0.25
    active: bool = False
    failed: bool = False

@dataclass
class RoutingStats:
    avg_latency: float = 0.0
    throughput: float = 0.0
    success_rate: float = 100.0
    total_requests: int = 0

    def p95_latency(self, multiplier: float) -> float:
        # fixed multiple of the smoothed average, kept for display compatibility
        return self.avg_latency * multiplier

@dataclass
class HistorySample:
    timestamp: str
    trad_latency: int
    neuro_latency: int
    trad_throughput: int
    neuro_throughput: int


# -----------------------------
# Policy + simulation state
# -----------------------------
@dataclass
class PolicyState:
    nodes: List[ServiceNode]
    stats: RoutingStats = field(default_factory=RoutingStats)
    current_path_index: int = 0
    last_winner_id: Optional[str] = None

@dataclass
class SimulationState:
    traditional: PolicyState
    adaptive: PolicyState
    is_running: bool = False
    elapsed_time: int = 0
    history: List[HistorySample] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


# -----------------------------
# Latency model
# -----------------------------
def random_normal(rng: random.Random, mean: float, std_dev: float) -> float:
    """Box-Muller draw from two uniforms; u is kept in (0, 1] so log(u) is finite."""
    u = 1.0 - rng.random()
    v = rng.random()
    z = math.sqrt(-2.0 * math.log(u)) * math.cos(2.0 * math.pi * v)
    return z * std_dev + mean

def next_latency(
    node: ServiceNode,
    volatility: float,
    rng: random.Random,
    base_latency: Dict[str, float],
    failure_latency: float = 3000.0,
    min_latency: float = 5.0,
    load_scale: float = 50.0,
) -> float:
    """
    Memoryless latency sample for one node.

    Failed nodes report the fixed penalty and consume no randomness. Healthy
    nodes get base(kind) + a load term + normal jitter, floored at min_latency.
    """
    if node.failed:
        return failure_latency
    base = base_latency[node.kind]
    load_factor = (node.load / 100.0) * load_scale
    jitter = random_normal(rng, 0.0, volatility)
    return max(min_latency, base + load_factor + jitter)
