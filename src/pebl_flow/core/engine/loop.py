"""
Iteration/Loop Controller do pebl-flow.

Este módulo resolve o conjunto de iterações de uma task para uma passada
do loop externo e conduz a máquina de estados de iteração:

    NOT_STARTED → RUNNING → CHECKED → {CONTINUING | DONE}

Regras:
    - descritor vazio → uma execução com a iteração sintética 0
    - conjunto explícito → exatamente aquele conjunto, na ordem declarada
    - LOOP_INDEX (-1) → substituído pela passada corrente do loop
    - INFINITE → iterações 1..N, onde N é o número de linhas das options
      (a coluna com mais linhas é a referência; 1 sem eixo de linhas)
    - stop predicate → verificado após cada dispatch; verdadeiro encerra a
      task nesta passada, falso avança (repetindo o conjunto ao esgotá-lo)

Invariantes:
    - Sem stop predicate, o plano termina ao esgotar o conjunto
    - INFINITE ignora um stop predicate explícito
    - Nenhum limite de iterações é imposto a stop predicates

Limites explícitos:
    - Não avalia o stop predicate (o Engine informa o resultado)
    - Não executa tasks
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional, Tuple

from pebl_flow.core.pipeline.registry import StopPredicate, TaskDeclaration
from pebl_flow.core.pipeline.types import INFINITE, LOOP_INDEX, NO_ITERATION, Rows


class LoopState(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    CHECKED = "checked"
    CONTINUING = "continuing"
    DONE = "done"


def has_row_axis(options: Any) -> bool:
    return isinstance(options, Rows) or any(isinstance(v, Rows) for v in options)


def row_count(options: Any) -> int:
    """Número de linhas disponíveis nas options (mínimo 1)."""
    if isinstance(options, Rows):
        return max(len(options), 1)
    counts = [len(v) for v in options if isinstance(v, Rows)]
    return max(counts + [1])


def expand_loop_index(iterations: Iterable[int], loop_pass: int) -> Tuple[int, ...]:
    return tuple(loop_pass if n == LOOP_INDEX else n for n in iterations)


def resolve_iterations(descriptor: Any, options: Any = (), loop_pass: int = 1) -> Tuple[int, ...]:
    """Conjunto concreto de iterações de uma task para uma passada."""
    if descriptor is INFINITE:
        return tuple(range(1, row_count(options) + 1))
    if not descriptor:
        return (NO_ITERATION,)
    return expand_loop_index(descriptor, loop_pass)


@dataclass
class IterationPlan:
    """Estado de iteração de uma task durante uma passada do loop."""

    iterations: Tuple[int, ...]
    stop: Optional[StopPredicate] = None
    state: LoopState = LoopState.NOT_STARTED
    current: Optional[int] = None
    dispatched: int = 0
    _position: int = field(default=0, repr=False)

    @classmethod
    def for_task(cls, decl: TaskDeclaration, loop_pass: int) -> "IterationPlan":
        iterations = resolve_iterations(decl.iterations, decl.options, loop_pass)
        stop = None if decl.iterations is INFINITE else decl.stop
        return cls(iterations=iterations, stop=stop)

    @property
    def total(self) -> Optional[int]:
        """Número de dispatches previstos; None quando governado por stop predicate."""
        return None if self.stop is not None else len(self.iterations)

    @property
    def done(self) -> bool:
        return self.state is LoopState.DONE

    def advance(self) -> Optional[int]:
        """Próxima iteração a despachar, ou None quando o plano terminou."""
        if self.state is LoopState.DONE:
            return None
        if self._position >= len(self.iterations):
            if self.stop is None or not self.iterations:
                self.state = LoopState.DONE
                return None
            self._position = 0
        self.current = self.iterations[self._position]
        self._position += 1
        self.dispatched += 1
        self.state = LoopState.RUNNING
        return self.current

    def checked(self, stop: bool) -> None:
        """Registra o resultado da verificação pós-dispatch."""
        self.state = LoopState.DONE if stop else LoopState.CONTINUING

    def recorded(self) -> None:
        """Output da iteração corrente gravado; aguardando verificação."""
        self.state = LoopState.CHECKED
