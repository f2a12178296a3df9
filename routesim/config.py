from dataclasses import dataclass, field


@dataclass
class PolicyConfig:
    overload_threshold: float = 90.0   # load above this degrades success
    overload_success: float = 0.8
    throughput_multiplier: float = 5.0
    p95_multiplier: float = 1.8        # display-only approximation, not a percentile


def _traditional_policy() -> PolicyConfig:
    return PolicyConfig()


def _adaptive_policy() -> PolicyConfig:
    return PolicyConfig(
        overload_threshold=95.0,
        overload_success=0.9,
        throughput_multiplier=6.5,
        p95_multiplier=1.2,
    )


@dataclass
class ScenarioConfig:
    # Latency model
    volatility: float = 20.0          # stdev of per-tick jitter (ms)
    failure_latency: float = 3000.0   # reported by failed nodes
    min_latency: float = 5.0
    load_latency_scale: float = 50.0  # ms added at 100% load
    base_latency: dict[str, float] = field(default_factory=lambda: {
        "cache": 15.0,
        "auth": 45.0,
        "compute": 85.0,
        "data": 120.0,
    })

    # Load gauge
    load_step: float = 5.0            # added to the selected node
    load_decay: float = 2.0           # removed from every other node
    max_load: float = 100.0

    # Rolling stats
    success_decay: float = 0.95
    latency_decay: float = 0.9
    throughput_decay: float = 0.9
    max_throughput: float = 1000.0

    # Adaptive routing
    selection_sharpness: float = 12.0  # exponent applied to weights before sampling
    target_latency: float = 40.0
    failure_delta: float = -1000.0
    learning_rate: float = 0.1
    delta_scale: float = 0.001
    unselected_decay: float = 0.999
    min_weight: float = 0.001
    max_weight: float = 0.999

    traditional: PolicyConfig = field(default_factory=_traditional_policy)
    adaptive: PolicyConfig = field(default_factory=_adaptive_policy)

    # History
    history_stride: int = 2
    history_maxlen: int = 31
    summary_min_history: int = 5      # summary figures stay at 0 until history is longer

    # Driver
    tick_ms: int = 1000
    event_log_maxlen: int | None = 500

    # Debug
    debug_routing: bool = False
