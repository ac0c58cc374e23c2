"""
Registro estrutural de tasks declaradas para uma run.

Este módulo define o `TaskRegistry`, responsável por registrar tasks com
suas options, descritores de iteração e stop predicates, validando a
declaração antes de qualquer planejamento ou execução.

Responsabilidades do módulo:
    - Classificar cada task em uma variante explícita (`as_task`)
    - Normalizar options (ausentes → lista vazia, escalar → lista unitária)
    - Normalizar descritores de iteração
    - Preservar a ordem de declaração (índice 0-based)

Invariantes:
    - Número de tasks e número de options são sempre iguais
    - Options de jobs formam pares (locator, valor)
    - Nenhuma declaração inválida é aceita no registry

Limites explícitos:
    - Não planeja a ordem de execução (ver planner)
    - Não executa tasks
    - Não avalia Deferred
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

from pebl_flow.core.exceptions import EngineConfigurationError

from .types import INFINITE, LOOP_INDEX, Rows, Task, TaskKind, _Infinite, as_task


IterationDescriptor = Union[Tuple[int, ...], _Infinite]
StopPredicate = Callable[[Any], Any]


def normalize_options(options: Any) -> Any:
    """None → [], Rows → Rows, lista/tupla → lista, escalar → [escalar]."""
    if options is None:
        return []
    if isinstance(options, Rows):
        return options
    if isinstance(options, (list, tuple)):
        return list(options)
    return [options]


def normalize_iterations(descriptor: Any) -> IterationDescriptor:
    """
    Normaliza um descritor de iteração.

    - None ou vazio → () (executa uma vez, iteração sintética 0)
    - INFINITE ou float('inf') → INFINITE
    - inteiro → tupla unitária
    - iterável de inteiros → tupla (LOOP_INDEX = -1 permitido)
    """
    if descriptor is None:
        return ()
    if descriptor is INFINITE or (isinstance(descriptor, float) and math.isinf(descriptor)):
        return INFINITE
    if isinstance(descriptor, int) and not isinstance(descriptor, bool):
        descriptor = (descriptor,)
    try:
        items = tuple(descriptor)
    except TypeError:
        raise EngineConfigurationError(
            f"Descritor de iteração inválido: {descriptor!r}",
            details={"iter": repr(descriptor)},
        ) from None
    if any(i is INFINITE or (isinstance(i, float) and math.isinf(i)) for i in items):
        return INFINITE
    for i in items:
        if isinstance(i, bool) or not isinstance(i, int) or i < LOOP_INDEX:
            raise EngineConfigurationError(
                f"Iteração inválida: {i!r}",
                details={"iter": repr(descriptor)},
                hint="Use inteiros >= 0, -1 (índice do loop) ou INFINITE",
            )
    return items


@dataclass(frozen=True)
class TaskDeclaration:
    """Task declarada com suas options e controles de iteração."""

    index: int
    task: Task
    options: Any = field(default_factory=list)
    iterations: IterationDescriptor = ()
    stop: Optional[StopPredicate] = None

    @property
    def name(self) -> str:
        return self.task.name


def _check_job_options(index: int, options: Any) -> None:
    rows = options if isinstance(options, Rows) else [options]
    for row in rows:
        if isinstance(row, (list, tuple)) and len(row) % 2 != 0:
            raise EngineConfigurationError(
                f"Options do job da task {index} devem alternar locator e valor",
                details={"task": index, "length": len(row)},
            )


@dataclass
class TaskRegistry:
    """
    Registro canônico de tasks para validação estrutural pré-execução.

    Invariantes:
        - A lista de tasks reflete exatamente a ordem de registro
        - Apenas declarações válidas são armazenadas
    """

    _tasks: List[TaskDeclaration] = field(default_factory=list, init=False, repr=False)

    def add(
        self,
        task: Any,
        options: Any = None,
        *,
        iterations: Any = None,
        stop: Optional[StopPredicate] = None,
    ) -> TaskDeclaration:
        index = len(self._tasks)
        variant = as_task(task)
        opts = normalize_options(options)
        if variant.kind is TaskKind.JOB:
            _check_job_options(index, opts)
        if stop is not None and not callable(stop):
            raise EngineConfigurationError(
                f"Stop predicate da task {index} deve ser chamável",
                details={"task": index},
            )
        decl = TaskDeclaration(
            index=index,
            task=variant,
            options=opts,
            iterations=normalize_iterations(iterations),
            stop=stop,
        )
        self._tasks.append(decl)
        return decl

    def get(self, index: int) -> TaskDeclaration:
        return self._tasks[index]

    def list(self) -> List[TaskDeclaration]:
        return list(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    @classmethod
    def from_lists(
        cls,
        tasks: Sequence[Any],
        options: Optional[Sequence[Any]] = None,
        *,
        iterations: Any = None,
        stops: Any = None,
    ) -> "TaskRegistry":
        """
        Constrói o registry a partir de listas paralelas.

        - options ausentes são completadas com listas vazias
        - `iterations`/`stops` não-lista são replicados para todas as tasks
        """
        options = list(options or [])
        if len(options) > len(tasks):
            raise EngineConfigurationError(
                "Há mais options do que tasks declaradas",
                details={"tasks": len(tasks), "options": len(options)},
            )
        options.extend([None] * (len(tasks) - len(options)))

        iters = _per_task(iterations, len(tasks), "iter")
        stop_list = _per_task(stops, len(tasks), "stop")

        reg = cls()
        for task, opts, it, stop in zip(tasks, options, iters, stop_list):
            reg.add(task, opts, iterations=it, stop=stop)
        return reg


def _per_task(value: Any, n: int, label: str) -> List[Any]:
    if isinstance(value, list) and (not value or not all(isinstance(v, int) for v in value)):
        if len(value) > n:
            raise EngineConfigurationError(
                f"'{label}' possui mais entradas do que tasks declaradas",
                details={label: len(value), "tasks": n},
            )
        return value + [None] * (n - len(value))
    return [value] * n
