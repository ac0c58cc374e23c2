# tests/core/engine/test_iteration_plan.py
"""
Testes do controlador de iteração (IterationPlan).

Os testes asseguram que:
- descritor vazio produz uma única execução com iteração 0
- LOOP_INDEX é substituído pela passada corrente
- INFINITE itera por todas as linhas (coluna mais longa)
- a máquina de estados percorre RUNNING → CHECKED → {CONTINUING | DONE}
- stop predicates repetem o conjunto até retornarem verdadeiro
"""
import pytest

try:
    from pebl_flow.core.engine.loop import (
        IterationPlan,
        LoopState,
        expand_loop_index,
        resolve_iterations,
        row_count,
    )
    from pebl_flow.core.pipeline.registry import TaskRegistry
    from pebl_flow.core.pipeline.types import INFINITE, Rows
except Exception as e:  # noqa: BLE001
    IterationPlan = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing loop controller. Import error: {_IMPORT_ERR}")


def _drain(plan, stop_after=None):
    seen = []
    while True:
        n = plan.advance()
        if n is None:
            break
        seen.append(n)
        plan.recorded()
        plan.checked(stop_after is not None and len(seen) >= stop_after)
        if plan.done:
            break
    return seen


def test_row_count_uses_longest_rows_column():
    _require_imports()

    assert row_count(["-n", "x"]) == 1
    assert row_count(["-n", Rows(["a", "b"]), Rows([1, 2, 3])]) == 3
    assert row_count(Rows([[1], [2]])) == 2
    assert row_count(Rows([])) == 1


def test_empty_descriptor_runs_once_with_iteration_zero():
    _require_imports()

    assert resolve_iterations(()) == (0,)


def test_loop_index_is_replaced_by_current_pass():
    _require_imports()

    assert expand_loop_index((-1, 2, -1), 3) == (3, 2, 3)
    assert resolve_iterations((-1,), loop_pass=2) == (2,)


def test_infinite_iterates_over_all_rows():
    _require_imports()

    assert resolve_iterations(INFINITE, ["-n", Rows(["a", "b", "c"])]) == (1, 2, 3)
    assert resolve_iterations(INFINITE, ["-n"]) == (1,)


def test_state_machine_without_stop_runs_set_once():
    _require_imports()

    plan = IterationPlan(iterations=(1, 2))
    assert plan.state is LoopState.NOT_STARTED
    assert plan.total == 2

    assert plan.advance() == 1
    assert plan.state is LoopState.RUNNING
    plan.recorded()
    assert plan.state is LoopState.CHECKED
    plan.checked(False)
    assert plan.state is LoopState.CONTINUING

    assert plan.advance() == 2
    plan.recorded()
    plan.checked(False)
    assert plan.advance() is None
    assert plan.done
    assert plan.dispatched == 2


def test_stop_predicate_repeats_iteration_set_until_true():
    _require_imports()

    plan = IterationPlan(iterations=(1, 2), stop=lambda ctx: False)
    assert plan.total is None

    assert _drain(plan, stop_after=5) == [1, 2, 1, 2, 1]
    assert plan.done
    assert plan.advance() is None


def test_for_task_resolves_declaration():
    """
    Verifica que `for_task` aplica as regras da declaração:
        - LOOP_INDEX resolvido pela passada
        - INFINITE ignora o stop predicate declarado
    """
    _require_imports()

    stop = lambda ctx: True  # noqa: E731
    reg = TaskRegistry()
    by_pass = reg.add("echo", ["-n", Rows(["this", "that"])], iterations=[-1], stop=stop)
    infinite = reg.add("echo", [Rows(["a", "b"])], iterations=INFINITE, stop=stop)

    plan = IterationPlan.for_task(by_pass, loop_pass=2)
    assert plan.iterations == (2,)
    assert plan.stop is stop

    plan = IterationPlan.for_task(infinite, loop_pass=1)
    assert plan.iterations == (1, 2)
    assert plan.stop is None
    assert _drain(plan) == [1, 2]
