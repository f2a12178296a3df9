from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Any, List
import numpy as np
import pandas as pd

from .config import ScenarioConfig
from .core import PolicyState, SimulationState

def _policy_row(prefix: str, policy: PolicyState, p95_multiplier: float) -> Dict[str, Any]:
    stats = policy.stats
    return {
        f"{prefix}_avg_latency": float(stats.avg_latency),
        f"{prefix}_p95_latency": float(stats.p95_latency(p95_multiplier)),
        f"{prefix}_throughput": float(stats.throughput),
        f"{prefix}_success_rate": float(stats.success_rate),
        f"{prefix}_total_requests": int(stats.total_requests),
        f"{prefix}_winner": policy.last_winner_id,
    }

@dataclass
class MetricsStore:
    tick_rows: List[Dict[str, Any]] = field(default_factory=list)
    node_rows: List[Dict[str, Any]] = field(default_factory=list)

    def record(self, state: SimulationState, cfg: ScenarioConfig) -> None:
        row: Dict[str, Any] = {"tick": state.elapsed_time}
        row.update(_policy_row("trad", state.traditional, cfg.traditional.p95_multiplier))
        row.update(_policy_row("neuro", state.adaptive, cfg.adaptive.p95_multiplier))
        self.tick_rows.append(row)
        for policy_name, policy in (("traditional", state.traditional), ("adaptive", state.adaptive)):
            for node in policy.nodes:
                self.node_rows.append({
                    "tick": state.elapsed_time,
                    "policy": policy_name,
                    "node_id": node.id,
                    "load": float(node.load),
                    "latency": float(node.latency),
                    "weight": float(node.weight),
                    "active": bool(node.active),
                    "failed": bool(node.failed),
                })

    def tick_df(self) -> pd.DataFrame:
        return pd.DataFrame(self.tick_rows)

    def node_df(self) -> pd.DataFrame:
        return pd.DataFrame(self.node_rows)

    def selection_share(self, policy: str) -> pd.Series:
        """Fraction of ticks each node was the active one, for one policy."""
        df = self.node_df()
        if df.empty:
            return pd.Series(dtype=float)
        df = df[df["policy"] == policy]
        return df.groupby("node_id")["active"].mean()

def history_df(state: SimulationState) -> pd.DataFrame:
    rows = [vars(s) for s in state.history]
    return pd.DataFrame(rows, columns=[
        "timestamp", "trad_latency", "neuro_latency", "trad_throughput", "neuro_throughput",
    ])

def summarize(state: SimulationState, cfg: ScenarioConfig | None = None) -> Dict[str, float]:
    """
    Headline comparison figures. Latency and throughput stay at 0 until the
    history has more than `summary_min_history` samples; the reliability gap
    is always reported.
    """
    cfg = cfg or ScenarioConfig()
    trad = state.traditional.stats
    neuro = state.adaptive.stats
    latency_improvement = 0.0
    throughput_gain = 0.0
    if len(state.history) > cfg.summary_min_history:
        latency_improvement = float((1.0 - neuro.avg_latency / np.maximum(1.0, trad.avg_latency)) * 100.0)
        throughput_gain = float(neuro.throughput / np.maximum(1.0, trad.throughput) * 100.0 - 100.0)
    return {
        "latency_improvement_pct": latency_improvement,
        "throughput_gain_pct": throughput_gain,
        "success_diff_pct": float(neuro.success_rate - trad.success_rate),
        "trad_p95_latency": float(trad.p95_latency(cfg.traditional.p95_multiplier)),
        "neuro_p95_latency": float(neuro.p95_latency(cfg.adaptive.p95_multiplier)),
    }

def format_elapsed(seconds: int) -> str:
    seconds = max(0, int(seconds))
    hours, rem = divmod(seconds, 3600)
    mins, secs = divmod(rem, 60)
    return f"{hours % 24:02d}:{mins:02d}:{secs:02d}"
