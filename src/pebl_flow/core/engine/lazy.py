"""
Lazy Expression Evaluator do pebl-flow.

Este módulo detecta valores `Deferred` dentro das options de uma task,
avalia-os no momento da chamada e substitui o resultado no lugar.

Um `Deferred` é uma closure explícita que recebe um `EvalContext`
(output store acumulado, iteração corrente, passada do loop, task) e
retorna o valor do argumento. Nenhum texto-fonte é executado.

Ordem de avaliação (por dispatch):
    1. seleção de linha (`select_row`), política clamp-to-last-row
    2. Deferred de escopo OUTPUTS (dependem do output store)
    3. linkage de dependências do job (quando a task é um job)
    4. Deferred de escopo TASK (dependem da estrutura corrente da task)

Invariantes:
    - Cada Deferred é avaliado no máximo uma vez por dispatch
    - As options declaradas nunca são mutadas (cópia ao longo do caminho)
    - O output store é apenas lido

Limites explícitos:
    - Não executa tasks
    - Não decide política de erro (falhas viram TaskError)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, List, Optional

from pebl_flow.core.addressing import apply, find, get
from pebl_flow.core.errors import DEFERRED_EVALUATION_ERROR
from pebl_flow.core.exceptions import TaskError
from pebl_flow.core.pipeline.outputs import OutputStore
from pebl_flow.core.pipeline.types import INFINITE, Rows


class Scope(str, Enum):
    """Escopo de dependência de um Deferred."""
    OUTPUTS = "outputs"
    TASK = "task"


@dataclass(frozen=True)
class EvalContext:
    """Contexto visível a um Deferred (e a stop predicates)."""

    outputs: OutputStore
    iteration: int = 0
    loop_pass: int = 1
    task_index: int = 0
    task: Any = None
    job: Any = None
    dependencies: Optional[List[Any]] = None

    @property
    def n(self) -> int:
        return self.iteration


@dataclass(frozen=True)
class Deferred:
    """Expressão avaliada no momento da chamada com um EvalContext."""

    fn: Callable[[EvalContext], Any]
    scope: Scope = Scope.OUTPUTS
    label: str = ""

    def __call__(self, ctx: EvalContext) -> Any:
        return self.fn(ctx)

    def __repr__(self) -> str:
        return f"Deferred({self.label or getattr(self.fn, '__name__', 'fn')}, scope={self.scope.value})"


def output_ref(task: int, row: int = -1, column: int = 0) -> Deferred:
    """Deferred que lê `outputs.value(task, row, column)`."""
    return Deferred(
        lambda ctx: ctx.outputs.value(task, row, column),
        label=f"output[{task}][{row}][{column}]",
    )


def iteration_ref() -> Deferred:
    """Deferred que devolve a iteração corrente."""
    return Deferred(lambda ctx: ctx.iteration, label="iteration")


def is_deferred(value: Any) -> bool:
    return isinstance(value, Deferred)


# ---------------------------------------------------------------------------
# Seleção de linha
# ---------------------------------------------------------------------------

def _is_finite_iteration(iteration: Any) -> bool:
    return iteration is not INFINITE and isinstance(iteration, int) and iteration > 0


def _pick(rows: Rows, iteration: int) -> Any:
    if len(rows) == 0:
        return None
    return rows[min(iteration, len(rows)) - 1]


def _as_args(row: Any) -> List[Any]:
    if isinstance(row, (list, tuple)):
        return list(row)
    return [row]


def select_row(options: Any, iteration: Any) -> List[Any]:
    """
    Seleciona a linha das options para a iteração (1-based).

    - options `Rows`: a linha `min(iteration, k)` vira a lista de argumentos
    - coluna `Rows`: apenas aquela coluna recebe o valor da linha
    - iteração 0 (sem iteração) ou INFINITE: valores usados como estão,
      exceto `Rows` de uma única linha, que é sempre desembrulhado

    Iterações além da última linha repetem a última (clamp).
    """
    finite = _is_finite_iteration(iteration)

    if isinstance(options, Rows):
        if finite or len(options) == 1:
            return _as_args(_pick(options, iteration if finite else 1))
        return list(options)

    selected = []
    for value in options:
        if isinstance(value, Rows):
            if finite or len(value) == 1:
                value = _pick(value, iteration if finite else 1)
            else:
                value = list(value)
        selected.append(value)
    return selected


# ---------------------------------------------------------------------------
# Avaliação
# ---------------------------------------------------------------------------

def _evaluate(options: List[Any], addresses, ctx: EvalContext) -> List[Any]:
    for address in addresses:
        deferred = get(options, address)
        try:
            value = deferred(ctx)
        except TaskError:
            raise
        except Exception as e:
            raise TaskError(
                f"Falha ao avaliar {deferred!r}: {e}",
                details={"address": str(address), "iteration": ctx.iteration},
                code=DEFERRED_EVALUATION_ERROR,
            ) from e
        options = apply(options, address, value)
    return options


def bind(
    options: Any,
    ctx: EvalContext,
    *,
    dependencies: Optional[Callable[[List[Any]], Any]] = None,
) -> List[Any]:
    """
    Produz as options ligadas (bound) de um dispatch.

    Args:
        options: Options declaradas (não são mutadas).
        ctx: Contexto de avaliação do dispatch.
        dependencies: Para jobs, função `options → (job, linkage)` calculada
            após os Deferred de escopo OUTPUTS e antes dos de escopo TASK.

    Returns:
        Lista de argumentos com todos os Deferred substituídos.
    """
    bound = select_row(options, ctx.iteration)

    deferred_at = find(bound, is_deferred)
    by_outputs = [a for a in deferred_at if _scope_of(bound, a) is Scope.OUTPUTS]
    by_task = [a for a in deferred_at if _scope_of(bound, a) is Scope.TASK]

    bound = _evaluate(bound, by_outputs, ctx)

    if dependencies is not None:
        job, linkage = dependencies(bound)
        ctx = replace(ctx, job=job, dependencies=linkage)

    return _evaluate(bound, by_task, ctx)


def _scope_of(options: List[Any], address) -> Scope:
    return get(options, address).scope
