"""
pebl-flow — Canonical Exceptions (v1)

Este módulo define as exceções tipadas internas do pebl-flow.

Objetivo:
- Permitir que o Addressor, o Dispatcher e o Engine levantem exceções semânticas
- Facilitar o mapeamento determinístico para ErrorPayload
- Evitar ValueError/RuntimeError genéricos nas fronteiras do engine

Regras:
- Exceções carregam apenas dados estruturados em `details`.
- A mensagem deve ser curta e humana.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(eq=False)
class PeblException(Exception):
    """Base class para exceções internas do pebl-flow.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Não embedar stack trace em payloads de erro
    """

    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Endereçamento de campos
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class AddressError(PeblException):
    """Locator literal não resolve contra o container informado."""


# ---------------------------------------------------------------------------
# Execução de tasks
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class TaskError(PeblException):
    """Falha de execução de uma task (callable, command, job, deferred ou stop).

    `code` identifica o tipo estável do erro (ver `core.errors`).
    """

    code: str = "TASK_EXECUTION_ERROR"


# ---------------------------------------------------------------------------
# Engine / Configuração
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class EngineConfigurationError(PeblException):
    """Declaração de run inválida ou inconsistente."""
