# src/pebl_flow/__init__.py
"""
pebl-flow — motor de automação para sequências heterogêneas de tasks.

Uma run executa callables Python, commands de shell e jobs declarativos
ao longo de iterações e passadas de loop. Outputs de tasks anteriores
chegam às options de tasks posteriores por meio de expressões tardias
(`Deferred`) avaliadas no momento da chamada.

Arquitetura em alto nível:
    - core.addressing → endereçamento de campos em estruturas aninhadas
    - core.engine     → planner, loop, avaliador, dispatcher e Engine
    - core.pipeline   → tasks, registry, OutputStore e RunContext
    - core.config     → configuração e arquivos de workflow
    - cli             → interface de linha de comando

Limites explícitos:
    - Execução local, síncrona e em uma única thread
    - Nenhuma persistência de estado da run
"""

from pebl_flow.core.engine import (
    Deferred,
    Engine,
    EvalContext,
    RunConfig,
    RunResult,
    Scope,
    feval,
    iteration_ref,
    output_ref,
)
from pebl_flow.core.pipeline.types import INFINITE, LOOP_INDEX, Rows

__all__ = [
    "Deferred",
    "Engine",
    "EvalContext",
    "RunConfig",
    "RunResult",
    "Scope",
    "feval",
    "iteration_ref",
    "output_ref",
    "INFINITE",
    "LOOP_INDEX",
    "Rows",
]
