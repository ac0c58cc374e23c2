# src/pebl_flow/core/pipeline/__init__.py
"""
# Pipeline Core — pebl-flow

Este pacote define as **estruturas fundamentais** de uma run:

## Componentes

- **types**
  - `TaskKind`: discriminante explícito das variantes de task
  - `CallableTask`, `CommandTask`, `JobTask`
  - `Rows`, `INFINITE`, `LOOP_INDEX`

- **registry**
  - `TaskRegistry`: declaração validada de tasks, options e iterações

- **outputs**
  - `OutputStore`: livro-razão append-only de resultados por task

- **context**
  - `RunContext`: log estruturado de eventos e warnings da run

## Invariantes

- Tasks são identificadas pelo índice 0-based de declaração
- O OutputStore nunca encolhe

## Limites Explícitos

- Não executa tasks
- Não avalia Deferred
"""
