# tests/conftest.py
"""
Fixtures compartilhados para testes do pebl-flow.

Este módulo define fixtures reutilizáveis que fornecem:
- configuração mínima e determinística (seção `engine`)
- contexto de execução controlado (RunContext)
- um job declarativo pequeno e um JobExecutor baseado em registry

O objetivo destas fixtures é permitir testes do core
(addressing, pipeline, engine e config) sem depender de:
- processos externos (exceto nos testes de command)
- filesystem (exceto via `tmp_path`)
- estado global

Decisões arquiteturais:
    - Fixtures são mantidas simples e explícitas
    - Imports do core são realizados de forma lazy para
      melhorar a clareza de erros durante falhas

Invariantes:
    - Nenhuma fixture executa uma run
    - Todas as fixtures retornam estruturas novas a cada teste

Limites explícitos:
    - Não substituir testes de integração
"""

import pytest
from datetime import datetime, timezone


# =====================================================
# Config / RunContext
# =====================================================

@pytest.fixture
def workflow_defaults_yaml() -> str:
    """
    YAML de workflow com seção `engine` usado como base nos testes de loader.

    Returns:
        str: Conteúdo YAML representando o arquivo base.
    """
    return """\
tasks:
  - command: echo
options:
  - ["-n", "hello"]
engine:
  loop: 1
  verbose: false
  throw_error: false
"""


@pytest.fixture
def workflow_local_yaml() -> str:
    """YAML de override local: altera apenas parâmetros do engine."""
    return """\
engine:
  loop: 3
  throw_error: true
"""


@pytest.fixture
def dummy_config() -> dict:
    """
    Configuração mínima e já resolvida para exercitar o Engine.

    Invariantes:
        - Estrutura determinística
        - Não depende de filesystem

    Returns:
        dict: Configuração com seção `engine`.
    """
    return {
        "engine": {"loop": 1, "verbose": False, "throw_error": False},
    }


@pytest.fixture
def dummy_ctx(dummy_config):
    """
    RunContext determinístico para testes.

    Decisões arquiteturais:
        - `run_id` e `created_at` são fixos
        - O import de RunContext é lazy

    Returns:
        RunContext: Contexto de execução isolado e previsível.
    """
    from pebl_flow.core.pipeline.context import RunContext

    return RunContext(
        run_id="run-test-001",
        created_at=datetime(2026, 1, 16, 0, 0, 0, tzinfo=timezone.utc),
        config=dummy_config,
        meta={"source": "pytest"},
    )


# =====================================================
# Jobs
# =====================================================

@pytest.fixture
def sample_job() -> list:
    """
    Job declarativo com dois módulos.

    - `load.files` é uma folha de coleção (lista)
    - `scale.factor` é uma folha escalar
    """
    return [
        {"load": {"files": [], "prefix": "raw"}},
        {"scale": {"values": [1, 2, 3], "factor": 1}},
    ]


@pytest.fixture
def job_executor():
    """
    ModuleJobExecutor com os módulos `load` e `scale`.

    - `load(files, prefix)` → {"paths": [...prefixados...], "count": n}
      (outputs: `paths`)
    - `scale(values, factor)` → lista escalada (output: valor inteiro)
    """
    from pebl_flow.core.jobs import JobModule, ModuleJobExecutor

    def load(files, prefix):
        return {"paths": [f"{prefix}/{f}" for f in files], "count": len(files)}

    def scale(values, factor):
        return [v * factor for v in values]

    return ModuleJobExecutor(
        {
            "load": JobModule(load, outputs=["paths"]),
            "scale": JobModule(scale),
        }
    )


# =====================================================
# Workflows
# =====================================================

HELPERS_MODULE = "pebl_wf_helpers"

_HELPERS_SOURCE = '''\
def count(name):
    return len(name)


def scale(values, factor):
    return [v * factor for v in values]


def two_rows(ctx):
    return ctx.outputs.row_count(ctx.task_index) >= 2


not_callable = 42
'''


@pytest.fixture
def helpers_module(tmp_path, monkeypatch):
    """
    Módulo importável `pebl_wf_helpers` com funções referenciadas por
    workflows (`pebl_wf_helpers:count`, `:scale`, `:two_rows`).

    Decisões arquiteturais:
        - O módulo é escrito em `tmp_path` e removido de `sys.modules`
          a cada teste
    """
    import sys

    (tmp_path / f"{HELPERS_MODULE}.py").write_text(_HELPERS_SOURCE, encoding="utf-8")
    monkeypatch.syspath_prepend(str(tmp_path))
    monkeypatch.delitem(sys.modules, HELPERS_MODULE, raising=False)
    return HELPERS_MODULE


@pytest.fixture
def write_workflow(tmp_path):
    """Escreve um arquivo de workflow em `tmp_path` e devolve o caminho."""

    def _write(text: str, name: str = "workflow.yaml"):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write
