from pathlib import Path

from streamlit.testing.v1 import AppTest

APP = str(Path(__file__).resolve().parents[1] / "app.py")


def sidebar_captions(at):
    return [c.value for c in at.sidebar.caption]


def test_step_button_updates_elapsed_clock_immediately():
    at = AppTest.from_file(APP, default_timeout=30).run()
    assert "Elapsed: 00:00:00" in sidebar_captions(at)

    at.button(key="step_one").click().run()
    assert "Elapsed: 00:00:01" in sidebar_captions(at)
    assert at.session_state.engine.tick == 1


def test_chaos_button_marks_node_failed():
    at = AppTest.from_file(APP, default_timeout=30).run()
    at.button(key="chaos_s1").click().run()
    assert at.session_state.engine.failure_overrides == {"s1": True}
    assert at.button(key="chaos_s1").label == "Restore Auth Service"
