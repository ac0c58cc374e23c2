"""
Tipos canônicos de declaração de run do pebl-flow.

Este módulo define as estruturas que padronizam a declaração de tasks,
options e descritores de iteração consumidos pelo Engine.

Componentes principais:
    - TaskKind    → discriminante explícito das variantes de task
    - CallableTask / CommandTask / JobTask → variantes da união
    - Rows        → marca explícita de eixo de linhas (iterações) em options
    - INFINITE    → descritor "iterar por todas as linhas das options"
    - LOOP_INDEX  → sentinela -1 ("usar o número da passada do loop")

Princípios fundamentais:
    - A classificação de uma task ocorre uma única vez, na declaração
    - O dispatcher decide apenas pelo `kind`, nunca por reflexão do valor
    - Tasks declaradas são imutáveis durante a run

Limites explícitos:
    - Não executa tasks
    - Não avalia Deferred
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Iterator, List, Union

from pebl_flow.core.exceptions import EngineConfigurationError


class TaskKind(str, Enum):
    """
    Discriminante das variantes de task.

    Tipos definidos:
        - CALLABLE: rotina Python invocada diretamente
        - COMMAND: comando de processo externo (shell)
        - JOB: estrutura declarativa parametrizável executada pelo executor de jobs
    """
    CALLABLE = "callable"
    COMMAND = "command"
    JOB = "job"


@dataclass(frozen=True)
class CallableTask:
    """Task que invoca uma função Python com as options como argumentos posicionais."""

    fn: Callable[..., Any]
    name: str = ""
    kind: TaskKind = field(default=TaskKind.CALLABLE, init=False)

    def __post_init__(self) -> None:
        if not callable(self.fn):
            raise EngineConfigurationError(
                "CallableTask requer um objeto chamável",
                details={"received": type(self.fn).__name__},
            )
        if not self.name:
            object.__setattr__(self, "name", getattr(self.fn, "__name__", repr(self.fn)))


@dataclass(frozen=True)
class CommandTask:
    """Task que executa um comando externo; options são anexadas como tokens."""

    command: str
    kind: TaskKind = field(default=TaskKind.COMMAND, init=False)

    def __post_init__(self) -> None:
        if not isinstance(self.command, str) or not self.command.strip():
            raise EngineConfigurationError("CommandTask requer um comando não vazio")

    @property
    def name(self) -> str:
        return self.command


@dataclass(frozen=True)
class JobTask:
    """
    Task declarativa: lista de módulos `{nome_do_modulo: {parametros}}`.

    O job declarado nunca é mutado; cada dispatch trabalha sobre uma cópia
    (ver `fresh()`).
    """

    job: Any
    name: str = "job"
    kind: TaskKind = field(default=TaskKind.JOB, init=False)

    def __post_init__(self) -> None:
        job = self.job
        if isinstance(job, Mapping):
            job = [job]
        if not isinstance(job, Sequence) or isinstance(job, (str, bytes)):
            raise EngineConfigurationError(
                "JobTask requer uma lista de módulos (ou um único módulo)",
                details={"received": type(self.job).__name__},
            )
        object.__setattr__(self, "job", copy.deepcopy(list(job)))

    def fresh(self) -> List[Any]:
        return copy.deepcopy(self.job)


Task = Union[CallableTask, CommandTask, JobTask]


def as_task(value: Any) -> Task:
    """
    Converte uma declaração crua em uma variante explícita de Task.

    Regras:
        - CallableTask / CommandTask / JobTask → inalterado
        - chamável → CallableTask
        - str → CommandTask
        - mapping ou lista de mappings → JobTask

    Raises:
        EngineConfigurationError: para qualquer outro valor.
    """
    if isinstance(value, (CallableTask, CommandTask, JobTask)):
        return value
    if callable(value):
        return CallableTask(value)
    if isinstance(value, str):
        return CommandTask(value)
    if isinstance(value, Mapping):
        return JobTask(value)
    if isinstance(value, Sequence) and value and all(isinstance(m, Mapping) for m in value):
        return JobTask(value)
    raise EngineConfigurationError(
        f"Não foi possível classificar a task: {type(value).__name__}",
        details={"received": repr(value)},
        hint="Use uma função, um comando (str) ou um job (lista de módulos)",
    )


# ---------------------------------------------------------------------------
# Eixo de linhas e descritores de iteração
# ---------------------------------------------------------------------------

class Rows(Sequence):
    """
    Eixo de linhas explícito em options.

    - Como options inteiras: cada linha é a lista de argumentos de uma iteração.
    - Como uma coluna das options: valor por iteração daquele argumento.
    """

    __slots__ = ("_rows",)

    def __init__(self, rows: Iterable[Any] = ()):
        self._rows = tuple(rows)

    def __getitem__(self, index):
        return self._rows[index]

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._rows)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Rows) and self._rows == other._rows

    def __hash__(self) -> int:
        return hash(self._rows)

    def __repr__(self) -> str:
        return f"Rows({list(self._rows)!r})"


class _Infinite:
    """Descritor de iteração: iterar até esgotar as linhas das options."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "INFINITE"

    def __reduce__(self):
        return (_Infinite, ())


INFINITE = _Infinite()

LOOP_INDEX = -1

NO_ITERATION = 0
