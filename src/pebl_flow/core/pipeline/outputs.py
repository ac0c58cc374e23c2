"""
Output Store: livro-razão append-only de resultados por task.

O OutputStore é o único canal pelo qual tasks posteriores observam os
resultados de tasks anteriores (via Deferred).

Estrutura:
    - uma entrada por slot de task declarada (índice 0-based)
    - cada entrada é uma lista de linhas, uma por dispatch
    - cada linha é uma tupla com um valor por output

Invariantes:
    - O eixo de tasks nunca encolhe; entradas de tasks ainda não executadas
      existem e estão vazias
    - `append` nunca sobrescreve nem remove linhas existentes
    - leituras fora do intervalo retornam `EMPTY` (não é erro)

Limites explícitos:
    - Não avalia Deferred
    - Não decide políticas de erro
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd


class _Empty:
    """Marcador de leitura vazia (linha ou valor inexistente)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __len__(self) -> int:
        return 0

    def __iter__(self):
        return iter(())

    def __repr__(self) -> str:
        return "EMPTY"

    def __reduce__(self):
        return (_Empty, ())


EMPTY = _Empty()

Row = Tuple[Any, ...]


class OutputStore:
    """Resultados acumulados por task e por dispatch."""

    def __init__(self, n_tasks: int):
        if n_tasks < 0:
            raise ValueError("n_tasks must be >= 0")
        self._entries: List[List[Row]] = [[] for _ in range(n_tasks)]

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        counts = [len(e) for e in self._entries]
        return f"OutputStore(rows={counts})"

    def _entry(self, task: int) -> List[Row]:
        if not -len(self._entries) <= task < len(self._entries):
            raise IndexError(f"task index out of range: {task}")
        return self._entries[task]

    # -----------------------------
    # Escrita
    # -----------------------------
    def append(self, task: int, row: Iterable[Any]) -> None:
        self._entry(task).append(tuple(row))

    # -----------------------------
    # Leitura
    # -----------------------------
    def read(self, task: int, row: int) -> Union[Row, "_Empty"]:
        """Linha `row` da task (índices negativos contam do fim); fora do intervalo → EMPTY."""
        if not -len(self._entries) <= task < len(self._entries):
            return EMPTY
        entry = self._entries[task]
        if not -len(entry) <= row < len(entry):
            return EMPTY
        return entry[row]

    def value(self, task: int, row: int = -1, column: int = 0) -> Any:
        """Valor de uma coluna de uma linha; EMPTY quando inexistente."""
        found = self.read(task, row)
        if found is EMPTY or not -len(found) <= column < len(found):
            return EMPTY
        return found[column]

    def rows(self, task: int) -> Tuple[Row, ...]:
        return tuple(self._entry(task))

    def row_count(self, task: int) -> int:
        return len(self._entry(task))

    def column(self, task: int, column: int = 0) -> List[Any]:
        return [r[column] if -len(r) <= column < len(r) else None for r in self._entry(task)]

    def project(self, n_out: Union[int, Sequence[int]] = 1) -> List[List[Any]]:
        """
        Projeção final dos outputs por task.

        - `n_out` inteiro k: primeiras k colunas; k == 1 devolve valores escalares
        - `n_out` sequência: colunas explícitas (0-based), sempre em tuplas
        """
        if isinstance(n_out, int):
            if n_out == 1:
                return [self.column(t, 0) for t in range(len(self))]
            columns: Sequence[int] = range(n_out)
        else:
            columns = list(n_out)
        return [
            [tuple(r[c] if c < len(r) else None for c in columns) for r in entry]
            for entry in self._entries
        ]

    def to_frame(self) -> pd.DataFrame:
        """Formato longo: uma linha por (task, row, column)."""
        records = [
            {"task": t, "row": i, "column": c, "value": v}
            for t, entry in enumerate(self._entries)
            for i, row in enumerate(entry)
            for c, v in enumerate(row)
        ]
        return pd.DataFrame.from_records(records, columns=["task", "row", "column", "value"])

    def snapshot(self) -> List[Tuple[Row, ...]]:
        return [tuple(e) for e in self._entries]

    def last(self, task: int, column: int = 0, offset: int = 0) -> Optional[Any]:
        """Atalho: valor de `column` na linha `-(offset + 1)`."""
        return self.value(task, -(offset + 1), column)
