# src/pebl_flow/core/engine/__init__.py
"""
Engine do pebl-flow.

Este pacote contém a implementação responsável por **planejar**,
**ligar** e **executar** a lista de tasks de uma run.

Componentes principais:
    - planner  → validação da sequência de execução e das passadas do loop
    - loop     → conjunto de iterações por task e máquina de estados do stop
    - lazy     → seleção de linha e avaliação de Deferred no momento da chamada
    - dispatch → execução de callables, commands e jobs
    - engine   → orquestração (`Engine`, `feval`) e política de erro

Princípios fundamentais:
    - Planejamento, ligação e execução são responsabilidades separadas
    - O despacho é síncrono e estritamente ordenado
    - Nenhuma falha é descartada sem uma mensagem registrada

Limites explícitos:
    - Não persiste estado da run
    - Não depende de UI
"""

from .engine import Engine, RunConfig, RunResult, feval
from .lazy import Deferred, EvalContext, Scope, bind, iteration_ref, output_ref, select_row

__all__ = [
    "Engine",
    "RunConfig",
    "RunResult",
    "feval",
    "Deferred",
    "EvalContext",
    "Scope",
    "bind",
    "iteration_ref",
    "output_ref",
    "select_row",
]
