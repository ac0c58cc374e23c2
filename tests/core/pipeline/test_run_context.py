# tests/core/pipeline/test_run_context.py
import pytest

try:
    from pebl_flow.core.pipeline.context import ENGINE_STEP_ID, RunContext, task_step_id
except Exception as e:  # noqa: BLE001
    RunContext = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing RunContext. Import error: {_IMPORT_ERR}")


def test_log_event_carries_run_and_step_ids(dummy_ctx):
    _require_imports()

    dummy_ctx.log(step_id=task_step_id(2), level="info", message="dispatch", iteration=1)

    (event,) = dummy_ctx.events
    assert event["run_id"] == "run-test-001"
    assert event["step_id"] == "task[2]"
    assert event["iteration"] == 1
    assert "timestamp" in event


def test_events_for_filters_by_step_and_level(dummy_ctx):
    _require_imports()

    dummy_ctx.log(step_id=ENGINE_STEP_ID, level="info", message="run_started")
    dummy_ctx.log(step_id="task[0]", level="debug", message="dispatch")
    dummy_ctx.log(step_id="task[0]", level="error", message="boom")

    assert len(dummy_ctx.events_for("task[0]")) == 2
    assert [e["message"] for e in dummy_ctx.events_for("task[0]", level="error")] == ["boom"]
    assert dummy_ctx.events_for("task[9]") == []


def test_warnings_grouped_by_step(dummy_ctx):
    _require_imports()

    dummy_ctx.add_warning(step_id="task[0]", message="a")
    dummy_ctx.add_warning(step_id="task[0]", message="b")

    assert dummy_ctx.warnings == {"task[0]": ["a", "b"]}


def test_new_contexts_are_isolated():
    _require_imports()

    a = RunContext.new(config={"engine": {"loop": 2}})
    b = RunContext.new()
    a.log(step_id=ENGINE_STEP_ID, level="info", message="x")

    assert a.run_id != b.run_id
    assert b.events == []
    assert a.config == {"engine": {"loop": 2}}
