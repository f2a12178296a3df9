from __future__ import annotations
from typing import List, Optional
import copy

from .core import ServiceNode, RoutingStats, PolicyState, SimulationState

INITIAL_SERVICES: List[ServiceNode] = [
    ServiceNode(id="s1", name="Auth Service", kind="auth", load=10.0, latency=45.0),
    ServiceNode(id="s2", name="Data Store", kind="data", load=25.0, latency=120.0),
    ServiceNode(id="s3", name="Redis Cache", kind="cache", load=5.0, latency=15.0),
    ServiceNode(id="s4", name="Compute Node", kind="compute", load=40.0, latency=85.0),
]

class RosterFactory:
    """
    Hands out policy-private copies of one roster. Every call deep-copies, so a
    node mutated in one policy never shows up in another (or in the template).
    The roster must hold at least one node. With a single node the adaptive
    weight is held at 1.0: the sum-to-one rule wins over the 0.999 ceiling.
    """
    def __init__(self, roster: Optional[List[ServiceNode]] = None) -> None:
        self.template: List[ServiceNode] = copy.deepcopy(roster if roster is not None else INITIAL_SERVICES)

    def build_roster(self) -> List[ServiceNode]:
        return copy.deepcopy(self.template)

    def build_policy(self) -> PolicyState:
        return PolicyState(nodes=self.build_roster(), stats=RoutingStats())

    def build_state(self) -> SimulationState:
        return SimulationState(
            traditional=self.build_policy(),
            adaptive=self.build_policy(),
        )

def initial_state(roster: Optional[List[ServiceNode]] = None) -> SimulationState:
    return RosterFactory(roster).build_state()
