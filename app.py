import time
import streamlit as st
import pandas as pd

from routesim.config import ScenarioConfig
from routesim.engine import SimulationEngine
from routesim.metrics import history_df, summarize, format_elapsed

st.set_page_config(page_title="Neuromorphic Routing Simulator", layout="wide")


def get_engine() -> SimulationEngine:
    if "engine" not in st.session_state:
        cfg = ScenarioConfig()
        st.session_state.cfg = cfg
        st.session_state.seed = 1
        st.session_state.engine = SimulationEngine(cfg=cfg, seed=st.session_state.seed)
    return st.session_state.engine


def reset_engine() -> None:
    cfg = st.session_state.get("cfg", ScenarioConfig())
    seed = st.session_state.get("seed", 1)
    st.session_state.engine = SimulationEngine(cfg=cfg, seed=seed)


engine = get_engine()

st.title("Neuromorphic Routing Simulator")
st.caption("Static round-robin vs. adaptive spike-timing routing under load and failure. 1 tick = 1 request = 1 second.")

def _render_kpi_grid(kpis, columns: int = 4) -> None:
    for idx in range(0, len(kpis), columns):
        row = kpis[idx: idx + columns]
        cols = st.columns(columns)
        for col, (label, value) in zip(cols, row):
            col.metric(label, value)

def _nodes_df(policy) -> pd.DataFrame:
    return pd.DataFrame([
        {
            "id": n.id,
            "name": n.name,
            "kind": n.kind,
            "load": round(n.load),
            "latency_ms": round(n.latency),
            "weight": round(n.weight, 4),
            "active": "●" if n.active else "",
            "status": "DOWN" if n.failed else "up",
        }
        for n in policy.nodes
    ])

def _stats_kpis(stats, p95_multiplier: float):
    return [
        ("Avg latency", f"{stats.avg_latency:.0f} ms"),
        ("Throughput", f"{round(stats.throughput)} req/s"),
        ("Success rate", f"{stats.success_rate:.1f}%"),
        ("P95 latency", f"{stats.p95_latency(p95_multiplier):.0f} ms"),
    ]

with st.sidebar:
    st.header("Sim Controls")
    st.caption(f"Elapsed: {format_elapsed(engine.tick)}")

    run_label = "Pause" if engine.is_running else "Start simulation"
    if st.button(run_label):
        engine.toggle_running()
        st.rerun()
    if st.button("Reset"):
        reset_engine()
        st.rerun()
    if st.button("Step 1 tick", key="step_one"):
        engine.step(1)
        st.rerun()
    st.caption("Reset restores tick 0 and clears every failure override.")

    st.subheader("Chaos Control")
    st.caption("Killing a node simulates a total outage. Watch the success rate gap.")
    for node in engine.factory.template:
        failed = engine.failure_overrides.get(node.id, False)
        label = f"Restore {node.name}" if failed else f"Kill {node.name}"
        if st.button(label, key=f"chaos_{node.id}"):
            engine.toggle_failure(node.id)
            st.rerun()

left, right = st.columns(2)
with left:
    st.subheader("Traditional routing (round robin)")
    st.dataframe(_nodes_df(engine.state.traditional), use_container_width=True, hide_index=True)
    _render_kpi_grid(_stats_kpis(engine.state.traditional.stats, engine.cfg.traditional.p95_multiplier))
with right:
    st.subheader("Neuromorphic routing (adaptive STDP)")
    st.dataframe(_nodes_df(engine.state.adaptive), use_container_width=True, hide_index=True)
    _render_kpi_grid(_stats_kpis(engine.state.adaptive.stats, engine.cfg.adaptive.p95_multiplier))
    if engine.state.adaptive.last_winner_id:
        st.caption(f"Last winner: {engine.state.adaptive.last_winner_id}")

hist = history_df(engine.state)
if not hist.empty:
    c1, c2 = st.columns(2)
    with c1:
        st.subheader("Latency evolution (lower is better)")
        st.line_chart(hist, x="timestamp", y=["trad_latency", "neuro_latency"])
    with c2:
        st.subheader("System throughput (higher is better)")
        st.bar_chart(hist.tail(10), x="timestamp", y=["trad_throughput", "neuro_throughput"])

summary = summarize(engine.state, engine.cfg)
st.subheader("Key findings")
_render_kpi_grid([
    ("Faster response", f"{summary['latency_improvement_pct']:.0f}%"),
    ("More requests", f"{summary['throughput_gain_pct']:.0f}%"),
    ("Reliability", f"+{summary['success_diff_pct']:.1f}%"),
], columns=3)

with st.expander("State snapshot"):
    st.json(engine.state.to_dict(), expanded=False)

with st.expander("Events"):
    events = engine.log.tail(50)
    if events:
        st.dataframe(pd.DataFrame([
            {"tick": e.tick, "event": e.event_type, "node": e.node_id or ""} for e in events
        ]), use_container_width=True, hide_index=True)
    else:
        st.info("No events yet.")

# drive signal: one tick per interval while the run flag is set
if engine.is_running:
    time.sleep(engine.cfg.tick_ms / 1000.0)
    engine.drive()
    st.rerun()
