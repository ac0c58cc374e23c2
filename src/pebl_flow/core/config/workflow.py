# src/pebl_flow/core/config/workflow.py
"""
Arquivos de workflow do pebl-flow (YAML ou JSON).

Um workflow declara tasks, options, iterações e parâmetros do engine
em um único documento:

    tasks:
      - command: echo
      - callable: "package.module:function"
      - job: jobs/pipeline.yaml          # ou a lista de módulos inline
    options:
      - ["-n", {$rows: ["this", "that"]}]
      - [{$output: [0, -1, 0]}]
    iter: [[-1], null]
    stop: [null, "package.module:converged"]
    modules:
      smooth: {callable: "package.jobs:smooth", outputs: ["files"]}
    engine:
      loop: 2

Marcadores reconhecidos em options:
    - `{$rows: [...]}`        → `Rows`
    - `{$output: [t, r, c]}`  → `output_ref(t, r, c)` (r e c opcionais)
    - `{$iteration: null}`    → `iteration_ref()`
    - `"inf"` em `iter`       → `INFINITE`

Invariantes:
    - Nenhum texto é avaliado como código; apenas referências
      `modulo:atributo` explícitas são importadas
    - Caminhos de job relativos são resolvidos a partir do arquivo de workflow

Limites explícitos:
    - Não executa a run
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from pebl_flow.core.engine.engine import Engine, RunConfig
from pebl_flow.core.engine.lazy import iteration_ref, output_ref
from pebl_flow.core.exceptions import EngineConfigurationError
from pebl_flow.core.jobs import JobModule, ModuleJobExecutor
from pebl_flow.core.pipeline.context import RunContext
from pebl_flow.core.pipeline.types import INFINITE, CallableTask, CommandTask, JobTask, Rows

from .errors import WorkflowError
from .loader import PathLike, load_config, read_document


_TASK_KEYS = ("command", "callable", "job")


def import_reference(reference: str) -> Any:
    """Importa `pacote.modulo:atributo[.sub]`."""
    if not isinstance(reference, str) or ":" not in reference:
        raise WorkflowError(f"Referência deve ter a forma 'modulo:atributo', recebido: {reference!r}")
    module_name, _, attr_path = reference.partition(":")
    try:
        obj: Any = importlib.import_module(module_name)
        for attr in attr_path.split("."):
            obj = getattr(obj, attr)
    except (ImportError, AttributeError) as e:
        raise WorkflowError(f"Não foi possível importar '{reference}': {e}") from e
    return obj


def decode_value(value: Any) -> Any:
    """Converte marcadores `$rows`, `$output` e `$iteration` recursivamente."""
    if isinstance(value, dict):
        if len(value) == 1:
            (key, arg), = value.items()
            if key == "$rows":
                if not isinstance(arg, list):
                    raise WorkflowError("'$rows' requer uma lista de linhas")
                return Rows(decode_value(v) for v in arg)
            if key == "$output":
                args = arg if isinstance(arg, list) else [arg]
                if not 1 <= len(args) <= 3 or not all(isinstance(a, int) for a in args):
                    raise WorkflowError(f"'$output' requer [task, row, column] inteiros, recebido: {arg!r}")
                return output_ref(*args)
            if key == "$iteration":
                return iteration_ref()
        return {k: decode_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [decode_value(v) for v in value]
    return value


def decode_iterations(value: Any) -> Any:
    if value == "inf":
        return INFINITE
    if isinstance(value, list):
        return [decode_iterations(v) for v in value]
    return value


@dataclass
class Workflow:
    """Workflow carregado: tasks, options e configuração resolvida."""

    tasks: List[Any]
    options: List[Any] = field(default_factory=list)
    stops: Any = None
    config: Dict[str, Any] = field(default_factory=dict)
    modules: Dict[str, JobModule] = field(default_factory=dict)
    source: Optional[Path] = None

    def run_config(self, **overrides: Any) -> RunConfig:
        config = dict(self.config)
        engine_cfg = dict(config.get("engine") or {})
        if "iter" in engine_cfg:
            engine_cfg["iter"] = decode_iterations(engine_cfg["iter"])
        config["engine"] = engine_cfg
        return RunConfig.from_config(config).with_overrides(**overrides)

    def engine(self, *, ctx: Optional[RunContext] = None, **overrides: Any) -> Engine:
        if ctx is None:
            ctx = RunContext.new(config=self.config, workflow=str(self.source or ""))
        executor = ModuleJobExecutor(self.modules) if self.modules else None
        try:
            config = self.run_config(**overrides)
            return Engine.from_lists(
                self.tasks,
                self.options,
                stop=self.stops,
                config=config,
                ctx=ctx,
                job_executor=executor,
            )
        except EngineConfigurationError as e:
            raise WorkflowError(str(e)) from e


def _task(entry: Any, position: int, base_dir: Path) -> Any:
    if not isinstance(entry, Mapping):
        raise WorkflowError(f"Task {position} deve ser um mapping com uma chave {_TASK_KEYS}")
    keys = [k for k in _TASK_KEYS if k in entry]
    if len(keys) != 1:
        raise WorkflowError(f"Task {position} deve declarar exatamente uma de {_TASK_KEYS}, recebido: {sorted(entry)}")

    kind = keys[0]
    value = entry[kind]
    if kind == "command":
        return CommandTask(str(value))
    if kind == "callable":
        fn = import_reference(value)
        if not callable(fn):
            raise WorkflowError(f"Task {position}: '{value}' não é chamável")
        return CallableTask(fn, name=entry.get("name", value))

    if isinstance(value, str):
        path = Path(value)
        value = read_document(path if path.is_absolute() else base_dir / path)
    if not value:
        raise WorkflowError(f"Task {position}: job vazio")
    return JobTask(value, name=entry.get("name", "job"))


def _modules(section: Any) -> Dict[str, JobModule]:
    modules: Dict[str, JobModule] = {}
    for name, spec in (section or {}).items():
        if isinstance(spec, str):
            spec = {"callable": spec}
        if not isinstance(spec, Mapping) or "callable" not in spec:
            raise WorkflowError(f"Módulo '{name}' deve declarar 'callable'")
        modules[name] = JobModule(fn=import_reference(spec["callable"]), outputs=tuple(spec.get("outputs") or ()))
    return modules


def _stops(section: Any) -> Any:
    if section is None:
        return None
    if isinstance(section, str):
        return import_reference(section)
    if isinstance(section, list):
        return [import_reference(s) if s is not None else None for s in section]
    raise WorkflowError(f"'stop' deve ser uma referência ou lista de referências, recebido: {section!r}")


def load_workflow(path: PathLike, *, local_path: Optional[PathLike] = None) -> Workflow:
    """
    Carrega um arquivo de workflow, aplicando overrides locais opcionais.

    Raises:
        ConfigError: para qualquer erro de leitura, merge ou estrutura.
    """
    source = Path(path)
    data = load_config(defaults_path=source, local_path=local_path)

    tasks_section = data.get("tasks")
    if not isinstance(tasks_section, list) or not tasks_section:
        raise WorkflowError("Workflow deve declarar uma lista não vazia em 'tasks'")

    base_dir = source.parent
    tasks = [_task(entry, i, base_dir) for i, entry in enumerate(tasks_section)]

    options = data.get("options") or []
    if not isinstance(options, list):
        raise WorkflowError("'options' deve ser uma lista (uma entrada por task)")

    config = {k: v for k, v in data.items() if k not in ("tasks", "options", "stop", "modules", "iter")}
    if "iter" in data:
        config.setdefault("engine", {})
        config["engine"] = dict(config["engine"] or {}, iter=data["iter"])

    return Workflow(
        tasks=tasks,
        options=[decode_value(o) for o in options],
        stops=_stops(data.get("stop")),
        config=config,
        modules=_modules(data.get("modules")),
        source=source,
    )
