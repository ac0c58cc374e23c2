"""
Planejador da ordem de execução (run order) do pebl-flow.

Este módulo valida a sequência de execução (`seq`) e o número de passadas
(`loop`) e produz o plano linear de dispatches de uma run.

Diferente de um DAG, a sequência pode repetir ou omitir índices de task:
uma task pode ser despachada várias vezes por passada ou nunca.

Invariantes:
    - Todo índice da sequência referencia uma task declarada
    - Sequência ausente equivale à ordem de declaração
    - A mesma entrada sempre produz o mesmo plano

Limites explícitos:
    - Não executa tasks
    - Não interage com RunContext
    - Não expande iterações (ver `loop`)
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from pebl_flow.core.exceptions import EngineConfigurationError


class UnknownTaskError(EngineConfigurationError):
    """
    Exceção levantada quando a sequência referencia uma task inexistente.

    Invariantes:
        - Um índice fora de `range(n_tasks)` invalida o plano
    """


def plan_sequence(n_tasks: int, seq: Optional[Iterable[int]] = None) -> List[int]:
    """
    Valida e normaliza a ordem de execução de uma passada.

    Args:
        n_tasks: Número de tasks declaradas.
        seq: Índices 0-based na ordem desejada (repetições permitidas).
            Ausente ou vazia: todas as tasks, na ordem de declaração.

    Returns:
        Lista de índices de task a despachar em cada passada.

    Raises:
        UnknownTaskError: se algum índice não corresponder a uma task declarada.
    """
    seq = list(seq) if seq is not None else []
    if not seq:
        return list(range(n_tasks))

    order: List[int] = []
    for idx in seq:
        if isinstance(idx, bool) or not isinstance(idx, int) or not 0 <= idx < n_tasks:
            raise UnknownTaskError(
                f"Sequência referencia task inexistente: {idx!r}",
                details={"index": repr(idx), "tasks": n_tasks},
                hint="Índices de task são 0-based na ordem de declaração",
            )
        order.append(idx)
    return order


def plan_execution(n_tasks: int, seq: Optional[Iterable[int]] = None, loop: int = 1) -> List[Tuple[int, int]]:
    """
    Produz o plano completo `(passada, task)` de uma run.

    Raises:
        EngineConfigurationError: se `loop` não for um inteiro >= 1.
        UnknownTaskError: se a sequência for inválida.
    """
    if isinstance(loop, bool) or not isinstance(loop, int) or loop < 1:
        raise EngineConfigurationError(
            f"'loop' deve ser inteiro >= 1, recebido: {loop!r}",
            details={"loop": repr(loop)},
        )
    order = plan_sequence(n_tasks, seq)
    return [(p, t) for p in range(1, loop + 1) for t in order]
