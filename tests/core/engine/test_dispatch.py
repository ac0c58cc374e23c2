# tests/core/engine/test_dispatch.py
"""
Testes do Task Dispatcher.

Os testes asseguram que:
- a aridade de callables é derivada da anotação de retorno
- callables sem retorno têm o stdout capturado como output
- commands anexam options como tokens e capturam stdout
- status de saída não-zero vira TaskError(TASK_COMMAND_FAILED)
- jobs recebem pares (locator, valor) e têm outputs colhidos pela linkage
- toda falha chega ao chamador como TaskError, sem eco em modo verbose
"""
from typing import Tuple

import pytest

try:
    from pebl_flow.core.engine.dispatch import (
        apply_job_options,
        callable_arity,
        command_line,
        dispatch,
        signature,
        split_columns,
    )
    from pebl_flow.core.errors import (
        ADDRESS_NOT_FOUND,
        TASK_COMMAND_FAILED,
        TASK_EXECUTION_ERROR,
        TASK_JOB_FAILED,
    )
    from pebl_flow.core.exceptions import TaskError
    from pebl_flow.core.jobs import JobModule, ModuleJobExecutor
    from pebl_flow.core.pipeline.types import CallableTask, CommandTask, JobTask
except Exception as e:  # noqa: BLE001
    dispatch = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing dispatcher. Import error: {_IMPORT_ERR}")


def _printer(text) -> None:
    print(text, end="")


def _pair(a, b) -> Tuple[int, int]:
    return a + b, a * b


def _single(a) -> int:
    return a + 1


def _plain(a):
    return (a, a)


# -----------------------------
# Callables
# -----------------------------

def test_arity_from_return_annotation():
    _require_imports()

    assert callable_arity(_printer) == 0
    assert callable_arity(_pair) == 2
    assert callable_arity(_single) == 1
    assert callable_arity(_plain) is None
    assert callable_arity(len) is None


def test_zero_arity_captures_stdout():
    _require_imports()

    values = dispatch(CallableTask(_printer), ["hello"])

    assert values == ("hello",)


def test_declared_arity_unpacks_tuple_and_pads():
    _require_imports()

    assert dispatch(CallableTask(_pair), [2, 3]) == (5, 6)
    assert dispatch(CallableTask(_single), [1], n_out=3) == (2, None, None)


def test_unannotated_callable_uses_requested_outputs():
    _require_imports()

    assert dispatch(CallableTask(_plain), [7]) == ((7, 7),)
    assert dispatch(CallableTask(_plain), [7], n_out=2) == (7, 7)


def test_callable_exception_becomes_task_error():
    _require_imports()

    def broken(x):
        raise ValueError("bad input")

    with pytest.raises(TaskError) as exc:
        dispatch(CallableTask(broken), [1])

    assert exc.value.code == TASK_EXECUTION_ERROR
    assert isinstance(exc.value.__cause__, ValueError)
    assert exc.value.details["call"] == "broken(1)"


def test_dispatch_logs_structured_events(dummy_ctx):
    _require_imports()

    dispatch(CallableTask(_single), [1], ctx=dummy_ctx, task_index=4)

    messages = [e["message"] for e in dummy_ctx.events_for("task[4]")]
    assert messages == ["dispatch", "dispatch_done"]
    assert dummy_ctx.events[0]["call"] == "_single(1)"


def test_verbose_prints_signature_and_outputs(capsys):
    _require_imports()

    dispatch(CallableTask(_single), [1], verbose=True)

    out = capsys.readouterr().out.splitlines()
    assert out == ["_single(1)", "2"]


def test_verbose_failure_prints_only_the_call(capsys):
    _require_imports()

    def broken(x):
        raise ValueError("bad input")

    with pytest.raises(TaskError):
        dispatch(CallableTask(broken), [1], verbose=True)

    assert capsys.readouterr().out.splitlines() == ["broken(1)"]


# -----------------------------
# Commands
# -----------------------------

def test_command_line_appends_options_as_tokens():
    _require_imports()

    assert command_line(CommandTask("echo"), ["-n", "this", 3]) == "echo -n this 3"
    assert command_line(CommandTask("ls"), []) == "ls"
    assert signature(CommandTask("echo"), ["x"]) == "echo x"


def test_command_captures_stdout():
    _require_imports()

    (out,) = dispatch(CommandTask("printf"), ["'%s'", "this"])

    assert out == "this"


def test_command_output_split_into_columns():
    _require_imports()

    values = dispatch(CommandTask("printf"), ["'a 1\\nb 2\\n'"], n_out=2)

    assert values == ("a\nb", "1\n2")
    assert split_columns("x y\nz\n", 2) == ("x\nz", "y\n")


def test_blank_command_output_with_several_columns_yields_none():
    _require_imports()

    values = dispatch(CommandTask("true"), [], n_out=2)

    assert values == (None, None)


def test_nonzero_exit_raises_command_failed():
    _require_imports()

    with pytest.raises(TaskError) as exc:
        dispatch(CommandTask("sh -c 'echo oops >&2; exit 3'"), [])

    assert exc.value.code == TASK_COMMAND_FAILED
    assert exc.value.details["returncode"] == 3
    assert "oops" in exc.value.details["output"]


# -----------------------------
# Jobs
# -----------------------------

def test_apply_job_options_wraps_scalar_into_list_leaf(sample_job):
    _require_imports()

    job = apply_job_options(sample_job, ["[0].load.files", "a.nii", "[1].scale.factor", 3])

    assert job[0]["load"]["files"] == ["a.nii"]
    assert job[1]["scale"]["factor"] == 3


def test_apply_job_options_pattern_hits_every_match(sample_job):
    _require_imports()

    job = apply_job_options(sample_job, [r"\.(prefix|factor)$", "p"])

    assert job[0]["load"]["prefix"] == "p"
    assert job[1]["scale"]["factor"] == "p"


def test_job_dispatch_harvests_outputs_per_module(sample_job, job_executor):
    _require_imports()

    task = JobTask(sample_job)
    values = dispatch(
        task,
        ["[0].load.files", ["a.nii", "b.nii"], "[1].scale.factor", 2],
        n_out=3,
        job_executor=job_executor,
    )

    assert values == (["raw/a.nii", "raw/b.nii"], [2, 4, 6], None)
    assert task.job[0]["load"]["files"] == []


def test_job_without_executor_fails():
    _require_imports()

    with pytest.raises(TaskError) as exc:
        dispatch(JobTask([{"load": {}}]), [])

    assert exc.value.code == TASK_JOB_FAILED


def test_job_with_stale_address_reports_address_not_found(sample_job, job_executor):
    _require_imports()

    with pytest.raises(TaskError) as exc:
        dispatch(JobTask(sample_job), ["[5].load.files", "x"], job_executor=job_executor)

    assert exc.value.code == ADDRESS_NOT_FOUND


def test_job_with_misspelled_final_key_reports_address_not_found(sample_job, job_executor):
    _require_imports()

    with pytest.raises(TaskError) as exc:
        dispatch(JobTask(sample_job), ["[0].load.filez", "a.nii"], job_executor=job_executor)

    assert exc.value.code == ADDRESS_NOT_FOUND
    assert "filez" not in sample_job[0]["load"]


def test_job_module_returning_none_harvests_none():
    _require_imports()

    executor = ModuleJobExecutor({"disp": JobModule(lambda data: None, outputs=("files",))})

    values = dispatch(JobTask([{"disp": {"data": "x"}}]), [], job_executor=executor)

    assert values == (None,)


def test_unknown_job_module_fails(job_executor):
    _require_imports()

    with pytest.raises(TaskError) as exc:
        dispatch(JobTask([{"missing": {}}]), [], job_executor=job_executor)

    assert exc.value.code == TASK_JOB_FAILED
    assert exc.value.details["name"] == "missing"
