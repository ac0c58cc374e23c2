"""
Interfaces de colaboradores externos do pebl-flow.

O core consome colaboradores que ficam fora do seu escopo (diálogos de
parâmetros, editores de job, barras de progresso). Este módulo define
apenas os contratos mínimos e implementações simples para uso scriptado.

Contratos:
    - ParameterSource: `(prompt, context) → linhas de valores` (vazio = cancelado)
    - JobEditor: `(job, addresses) → (job, addresses)`; os endereços
      devolvidos devem resolver contra o job devolvido
    - ProgressReporter: `(current, total, start, label)`, puramente observacional

Limites explícitos:
    - Nenhuma UI
    - Nenhuma persistência de presets
"""

from __future__ import annotations

import copy
import time
from typing import Any, Callable, List, Mapping, Optional, Protocol, Sequence, Tuple

from pebl_flow.core.addressing import Address, Locator, resolve
from pebl_flow.core.pipeline.context import ENGINE_STEP_ID, RunContext
from pebl_flow.core.pipeline.types import Rows


# ---------------------------------------------------------------------------
# Parameter source
# ---------------------------------------------------------------------------

class ParameterSource(Protocol):
    def __call__(self, prompt: str, context: Optional[Mapping[str, Any]] = None) -> Optional[Sequence[Any]]:
        ...


class StaticParameterSource:
    """ParameterSource com respostas fixas por prompt (prompts desconhecidos = cancelamento)."""

    def __init__(self, answers: Mapping[str, Sequence[Any]]):
        self.answers = dict(answers)
        self.asked: List[str] = []

    def __call__(self, prompt: str, context: Optional[Mapping[str, Any]] = None) -> Optional[Sequence[Any]]:
        self.asked.append(prompt)
        return self.answers.get(prompt)


def collect_options(
    source: ParameterSource,
    prompts: Sequence[str],
    context: Optional[Mapping[str, Any]] = None,
) -> List[Any]:
    """
    Monta as options de uma task perguntando cada prompt à fonte.

    - uma linha → valor constante
    - várias linhas → coluna `Rows`
    - resposta vazia em qualquer prompt → cancelamento (options vazias)
    """
    options: List[Any] = []
    for prompt in prompts:
        rows = source(prompt, context)
        if not rows:
            return []
        rows = list(rows)
        options.append(rows[0] if len(rows) == 1 else Rows(rows))
    return options


# ---------------------------------------------------------------------------
# Job editor
# ---------------------------------------------------------------------------

class JobEditor(Protocol):
    def __call__(self, job: Any, addresses: Sequence[Address]) -> Tuple[Any, Sequence[Locator]]:
        ...


def checked_edit(editor: JobEditor, job: Any, addresses: Sequence[Address]) -> Tuple[Any, List[Address]]:
    """
    Executa o editor sobre uma cópia do job e valida os endereços devolvidos.

    Raises:
        AddressError: se algum endereço devolvido não resolver no job editado.
    """
    edited, returned = editor(copy.deepcopy(job), list(addresses))
    return edited, [resolve(edited, a) for a in returned]


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

class ProgressReporter(Protocol):
    def __call__(self, current: int, total: Optional[int], start: float, label: str) -> None:
        ...


def estimate_remaining(current: int, total: Optional[int], elapsed: float) -> Optional[float]:
    """Tempo restante estimado por média simples; None quando desconhecido."""
    if not total or current <= 0:
        return None
    return max(total - current, 0) * (elapsed / current)


def log_progress(ctx: RunContext, *, clock: Callable[[], float] = time.monotonic) -> ProgressReporter:
    """ProgressReporter que registra eventos `progress` no RunContext."""

    def report(current: int, total: Optional[int], start: float, label: str) -> None:
        elapsed = clock() - start
        ctx.log(
            step_id=ENGINE_STEP_ID,
            level="info",
            message="progress",
            label=label,
            current=current,
            total=total,
            elapsed=round(elapsed, 3),
            remaining=estimate_remaining(current, total, elapsed),
        )

    return report
