"""
Contexto de execução de uma run do pebl-flow.

Este módulo define o `RunContext`, a estrutura canônica que acompanha uma
run do Engine e concentra sua observabilidade.

O RunContext atua como o único meio permitido de:
    - registro de logs estruturados de execução
    - coleta de warnings não fatais associados a tasks
    - transporte da configuração resolvida da run

Princípios fundamentais:
    - Isolamento por execução (cada run possui seu próprio contexto)
    - Ausência de estado global compartilhado
    - Estrutura simples e testável

Invariantes:
    - Logs sempre incluem `run_id` e `step_id`
    - Warnings são agrupados por `step_id`
    - O contexto é mutável apenas durante a execução

Limites explícitos:
    - Não executa tasks
    - Não armazena outputs de tasks (ver `OutputStore`)
    - Não persiste dados automaticamente
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def task_step_id(task_index: int) -> str:
    """Identificador de log de uma task declarada."""
    return f"task[{task_index}]"


ENGINE_STEP_ID = "engine"


@dataclass
class RunContext:
    """
    Contexto de execução compartilhado de uma run.

    O RunContext consolida:
        - identidade da execução (run_id, created_at)
        - configuração resolvida
        - logs estruturados de execução
        - warnings associados a tasks específicas

    Invariantes:
        - Cada execução possui um RunContext único
        - Logs incluem sempre `run_id` e `step_id`
    """
    run_id: str
    created_at: datetime
    config: Dict[str, Any] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)

    events: List[Dict[str, Any]] = field(default_factory=list, init=False)
    warnings: Dict[str, List[str]] = field(default_factory=dict, init=False)

    @classmethod
    def new(cls, config: Optional[Dict[str, Any]] = None, **meta: Any) -> "RunContext":
        return cls(
            run_id=f"run-{uuid.uuid4().hex[:12]}",
            created_at=datetime.now(timezone.utc),
            config=dict(config or {}),
            meta=dict(meta),
        )

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, step_id: str, level: str, message: str, **extra: Any) -> None:
        event = {
            "run_id": self.run_id,
            "step_id": step_id,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        self.events.append(event)

    def add_warning(self, *, step_id: str, message: str) -> None:
        if step_id not in self.warnings:
            self.warnings[step_id] = []
        self.warnings[step_id].append(message)

    def events_for(self, step_id: str, *, level: Optional[str] = None) -> List[Dict[str, Any]]:
        return [
            e for e in self.events
            if e["step_id"] == step_id and (level is None or e["level"] == level)
        ]
