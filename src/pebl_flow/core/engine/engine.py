# src/pebl_flow/core/engine/engine.py
"""
Orquestrador do pebl-flow (equivalente a `pebl_feval`).

Para cada passada do loop externo e cada task da sequência de execução:
    1. resolve o conjunto de iterações (loop controller)
    2. liga as options (seleção de linha + Deferred)
    3. despacha a task
    4. grava uma linha no OutputStore
    5. verifica o stop predicate

Política de erro:
    - padrão: a falha vira ErrorPayload (RunResult.errors + evento `error`),
      uma linha de placeholders None é gravada e a run continua
    - `throw_error=True`: o TaskError é relançado imediatamente

Invariantes:
    - Uma única thread, despacho estritamente ordenado
    - Toda falha contida deixa ao menos uma mensagem registrada
    - O OutputStore só cresce

Limites explícitos:
    - Não persiste estado da run
    - Não aplica timeout nem cancelamento
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from pebl_flow.core.collaborators import ProgressReporter, log_progress
from pebl_flow.core.errors import (
    STOP_PREDICATE_ERROR,
    TASK_JOB_FAILED,
    ErrorPayload,
    task_error_payload,
)
from pebl_flow.core.exceptions import AddressError, EngineConfigurationError, TaskError
from pebl_flow.core.jobs import JobExecutor
from pebl_flow.core.pipeline.context import ENGINE_STEP_ID, RunContext, task_step_id
from pebl_flow.core.pipeline.outputs import OutputStore
from pebl_flow.core.pipeline.registry import TaskDeclaration, TaskRegistry
from pebl_flow.core.pipeline.types import TaskKind

from .dispatch import dispatch, job_dependencies, signature
from .lazy import EvalContext, bind, is_deferred
from .loop import IterationPlan, has_row_axis, row_count
from .planner import plan_execution


NOut = Union[int, Tuple[int, ...]]

_ENGINE_KEYS = ("loop", "seq", "iter", "n_out", "verbose", "throw_error", "progress")


@dataclass(frozen=True)
class RunConfig:
    """
    Parâmetros explícitos de uma run (sem estado global).

    - loop: número de passadas do loop externo (>= 1)
    - seq: ordem de execução (índices 0-based; repetições permitidas;
      vazia equivale a todas as tasks)
    - iter: descritor de iteração (único ou por task)
    - n_out: número de outputs ou colunas explícitas (0-based)
    - verbose: ecoa assinaturas, valores e falhas em stdout
    - throw_error: relança o primeiro TaskError
    - progress: registra estimativas de tempo no RunContext
    """

    loop: int = 1
    seq: Optional[Tuple[int, ...]] = None
    iter: Any = None
    n_out: NOut = 1
    verbose: bool = False
    throw_error: bool = False
    progress: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.n_out, int):
            if isinstance(self.n_out, bool) or self.n_out < 1:
                raise EngineConfigurationError(
                    f"'n_out' deve ser inteiro >= 1, recebido: {self.n_out!r}",
                    details={"n_out": repr(self.n_out)},
                )
        else:
            columns = tuple(self.n_out)
            if not columns or any(isinstance(c, bool) or not isinstance(c, int) or c < 0 for c in columns):
                raise EngineConfigurationError(
                    f"'n_out' deve listar colunas >= 0, recebido: {self.n_out!r}",
                    details={"n_out": repr(self.n_out)},
                )
            object.__setattr__(self, "n_out", columns)
        if self.seq is not None:
            object.__setattr__(self, "seq", tuple(self.seq) or None)

    @property
    def requested(self) -> int:
        """Número de outputs solicitado a cada dispatch."""
        if isinstance(self.n_out, int):
            return self.n_out
        return max(self.n_out) + 1

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]]) -> "RunConfig":
        """Lê a seção `engine` de uma configuração resolvida."""
        engine_cfg = (config or {}).get("engine", {}) or {}
        unknown = sorted(set(engine_cfg) - set(_ENGINE_KEYS))
        if unknown:
            raise EngineConfigurationError(
                f"Chaves desconhecidas na seção 'engine': {unknown}",
                details={"unknown": unknown, "allowed": list(_ENGINE_KEYS)},
            )
        return cls(**{k: v for k, v in engine_cfg.items() if v is not None})

    def with_overrides(self, **overrides: Any) -> "RunConfig":
        """Nova RunConfig com os valores não-None sobrepostos."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


@dataclass(frozen=True)
class RunResult:
    """Resultado agregado de uma run."""

    outputs: OutputStore
    errors: List[ErrorPayload] = field(default_factory=list)
    dispatches: int = 0
    n_out: NOut = 1

    @property
    def ok(self) -> bool:
        return not self.errors

    def projected(self) -> List[List[Any]]:
        return self.outputs.project(self.n_out)


class Engine:
    """Orquestrador canônico do pebl-flow (planner + loop + dispatcher)."""

    def __init__(
        self,
        *,
        registry: TaskRegistry,
        config: Optional[RunConfig] = None,
        ctx: Optional[RunContext] = None,
        job_executor: Optional[JobExecutor] = None,
        progress: Optional[ProgressReporter] = None,
    ):
        self.registry = registry
        self.ctx: RunContext = ctx if ctx is not None else RunContext.new()
        self.config: RunConfig = config if config is not None else RunConfig.from_config(self.ctx.config)
        self.job_executor = job_executor
        if progress is None and self.config.progress:
            progress = log_progress(self.ctx)
        self.progress = progress

    @classmethod
    def from_lists(
        cls,
        tasks: Sequence[Any],
        options: Optional[Sequence[Any]] = None,
        *,
        stop: Any = None,
        config: Optional[RunConfig] = None,
        **kwargs: Any,
    ) -> "Engine":
        config = config or RunConfig()
        registry = TaskRegistry.from_lists(tasks, options, iterations=config.iter, stops=stop)
        return cls(registry=registry, config=config, **kwargs)

    # ------------------------------------------------------------------
    # Política de erro
    # ------------------------------------------------------------------

    def _contain(
        self,
        exc: Exception,
        *,
        decl: TaskDeclaration,
        iteration: int,
        loop_pass: int,
        errors: List[ErrorPayload],
    ) -> None:
        """Registra a falha ou a relança, conforme `throw_error`."""
        if self.config.throw_error:
            raise exc

        payload = task_error_payload(
            exc,
            task_index=decl.index,
            iteration=iteration,
            loop_pass=loop_pass,
            task_name=decl.name,
        )
        errors.append(payload)
        self.ctx.log(
            step_id=task_step_id(decl.index),
            level="error",
            message=payload.message,
            error=payload.to_dict(),
        )
        if self.config.verbose:
            print(f"{decl.name} error: {payload.message}")

    # ------------------------------------------------------------------
    # Uma iteração
    # ------------------------------------------------------------------

    def _eval_context(self, decl: TaskDeclaration, outputs: OutputStore, iteration: int, loop_pass: int) -> EvalContext:
        return EvalContext(
            outputs=outputs,
            iteration=iteration,
            loop_pass=loop_pass,
            task_index=decl.index,
            task=decl.task,
        )

    def _bind(self, decl: TaskDeclaration, ectx: EvalContext) -> List[Any]:
        dependencies = None
        if decl.task.kind is TaskKind.JOB and self.job_executor is not None:
            dependencies = job_dependencies(decl.task, self.job_executor, skip=is_deferred)
        try:
            return bind(decl.options, ectx, dependencies=dependencies)
        except (TaskError, AddressError):
            raise
        except Exception as e:
            raise TaskError(
                f"Falha ao calcular dependências do job: {e}",
                details={"iteration": ectx.iteration},
                code=TASK_JOB_FAILED,
            ) from e

    def _warn_clamped(self, decl: TaskDeclaration, iteration: int) -> None:
        if iteration <= 1 or not has_row_axis(decl.options):
            return
        rows = row_count(decl.options)
        if iteration > rows:
            self.ctx.add_warning(
                step_id=task_step_id(decl.index),
                message=f"iteração {iteration} excede as {rows} linha(s) das options; última linha reutilizada",
            )

    def _run_once(
        self,
        decl: TaskDeclaration,
        iteration: int,
        loop_pass: int,
        outputs: OutputStore,
        errors: List[ErrorPayload],
    ) -> Tuple[Any, ...]:
        self._warn_clamped(decl, iteration)
        ectx = self._eval_context(decl, outputs, iteration, loop_pass)
        bound: Optional[List[Any]] = None
        try:
            bound = self._bind(decl, ectx)
            return dispatch(
                decl.task,
                bound,
                n_out=self.config.requested,
                verbose=self.config.verbose,
                job_executor=self.job_executor,
                ctx=self.ctx,
                task_index=decl.index,
            )
        except (TaskError, AddressError) as e:
            if self.config.verbose and bound is None:
                print(signature(decl.task, []))
            self._contain(e, decl=decl, iteration=iteration, loop_pass=loop_pass, errors=errors)
            return (None,) * self.config.requested

    def _evaluate_stop(self, plan: IterationPlan, ectx: EvalContext) -> bool:
        try:
            return bool(plan.stop(ectx))
        except TaskError:
            raise
        except Exception as e:
            raise TaskError(
                f"Stop predicate falhou: {e}",
                details={"iteration": ectx.iteration},
                code=STOP_PREDICATE_ERROR,
            ) from e

    def _should_stop(
        self,
        plan: IterationPlan,
        decl: TaskDeclaration,
        iteration: int,
        loop_pass: int,
        outputs: OutputStore,
        errors: List[ErrorPayload],
    ) -> bool:
        if plan.stop is None:
            return False
        try:
            stop = self._evaluate_stop(plan, self._eval_context(decl, outputs, iteration, loop_pass))
        except TaskError as e:
            self._contain(e, decl=decl, iteration=iteration, loop_pass=loop_pass, errors=errors)
            return True

        self.ctx.log(
            step_id=task_step_id(decl.index),
            level="debug",
            message="stop_check",
            iteration=iteration,
            loop=loop_pass,
            stop=stop,
        )
        return stop

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self) -> RunResult:
        order = plan_execution(len(self.registry), self.config.seq, self.config.loop)
        outputs = OutputStore(len(self.registry))
        errors: List[ErrorPayload] = []
        dispatches = 0
        start = time.monotonic()

        self.ctx.log(
            step_id=ENGINE_STEP_ID,
            level="info",
            message="run_started",
            tasks=len(self.registry),
            plan=len(order),
            loop=self.config.loop,
        )

        for loop_pass, index in order:
            decl = self.registry.get(index)
            plan = IterationPlan.for_task(decl, loop_pass)
            label = f"{decl.name} (loop {loop_pass})"

            while True:
                iteration = plan.advance()
                if iteration is None:
                    break

                row = self._run_once(decl, iteration, loop_pass, outputs, errors)
                outputs.append(index, row)
                dispatches += 1
                plan.recorded()

                plan.checked(self._should_stop(plan, decl, iteration, loop_pass, outputs, errors))
                if self.progress is not None:
                    self.progress(plan.dispatched, plan.total, start, label)

        self.ctx.log(
            step_id=ENGINE_STEP_ID,
            level="info",
            message="run_finished",
            dispatches=dispatches,
            errors=len(errors),
        )
        return RunResult(outputs=outputs, errors=errors, dispatches=dispatches, n_out=self.config.n_out)


def _as_task_list(tasks: Any) -> List[Any]:
    """Task única → lista unitária; lista de mappings é um único job."""
    if isinstance(tasks, (list, tuple)) and not (tasks and all(isinstance(t, Mapping) for t in tasks)):
        return list(tasks)
    return [tasks]


def feval(
    tasks: Any,
    *options: Any,
    loop: int = 1,
    seq: Optional[Sequence[int]] = None,
    iter: Any = None,
    stop: Any = None,
    n_out: NOut = 1,
    verbose: bool = False,
    throw_error: bool = False,
    progress: Union[bool, ProgressReporter, None] = None,
    job_executor: Optional[JobExecutor] = None,
    ctx: Optional[RunContext] = None,
) -> RunResult:
    """
    Forma funcional do Engine.

    Args:
        tasks: Uma task ou lista de tasks (callable, command str ou job).
        *options: Options de cada task, na ordem de declaração.
        loop: Número de passadas do loop externo.
        seq: Ordem de execução (índices 0-based).
        iter: Descritor de iteração (único para todas ou lista por task).
        stop: Stop predicate (único ou lista por task).
        n_out: Número de outputs ou colunas explícitas.
        verbose: Ecoa chamadas, valores e falhas.
        throw_error: Relança o primeiro TaskError.
        progress: True para registrar progresso no RunContext, ou um ProgressReporter.
        job_executor: Executor de jobs (obrigatório para tasks de job).
        ctx: RunContext da run (um novo é criado quando ausente).

    Returns:
        RunResult com o OutputStore completo e os erros registrados.
    """
    config = RunConfig(
        loop=loop,
        seq=seq,
        iter=iter,
        n_out=n_out,
        verbose=verbose,
        throw_error=throw_error,
        progress=progress is True,
    )
    reporter = progress if callable(progress) else None
    engine = Engine.from_lists(
        _as_task_list(tasks),
        list(options),
        stop=stop,
        config=config,
        ctx=ctx,
        job_executor=job_executor,
        progress=reporter,
    )
    return engine.run()
