"""
pebl-flow — Canonical Error Structures (v1)

Este módulo define o padrão canônico de erros registrados durante uma run.
Erros de task não interrompem a run por padrão: viram payloads
serializáveis anexados ao RunResult e ao log do RunContext.

Nenhum erro é descartado sem ao menos uma mensagem registrada.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from .exceptions import AddressError, PeblException, TaskError


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ErrorPayload:
    """
    Payload canônico de erro do pebl-flow.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
      (task, iteração, passada do loop, assinatura da chamada)
    - hint: ação sugerida ao operador
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

# Execução de tasks
TASK_EXECUTION_ERROR = "TASK_EXECUTION_ERROR"
TASK_COMMAND_FAILED = "TASK_COMMAND_FAILED"
TASK_JOB_FAILED = "TASK_JOB_FAILED"
DEFERRED_EVALUATION_ERROR = "DEFERRED_EVALUATION_ERROR"
STOP_PREDICATE_ERROR = "STOP_PREDICATE_ERROR"

# Endereçamento
ADDRESS_NOT_FOUND = "ADDRESS_NOT_FOUND"


# ---------------------------------------------------------------------------
# Helpers de fábrica
# ---------------------------------------------------------------------------

def task_error_payload(
    exc: BaseException,
    *,
    task_index: int,
    iteration: int,
    loop_pass: int,
    task_name: Optional[str] = None,
) -> ErrorPayload:
    """Converte uma exceção capturada na fronteira do dispatcher em ErrorPayload."""
    if isinstance(exc, TaskError):
        code = exc.code
    elif isinstance(exc, AddressError):
        code = ADDRESS_NOT_FOUND
    else:
        code = TASK_EXECUTION_ERROR

    details: Dict[str, Any] = {
        "task": task_index,
        "task_name": task_name,
        "iteration": iteration,
        "loop": loop_pass,
    }
    hint = None
    if isinstance(exc, PeblException):
        details.update(exc.details or {})
        hint = exc.hint

    cause = exc.__cause__
    if cause is not None:
        details.setdefault("exception_class", cause.__class__.__name__)
    else:
        details.setdefault("exception_class", exc.__class__.__name__)

    return ErrorPayload(
        type=code,
        message=str(exc) or "Erro inesperado durante execução da task",
        details=details,
        hint=hint,
    )

