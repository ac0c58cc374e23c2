"""
Task Dispatcher do pebl-flow.

Este módulo executa uma task já ligada (options com Deferred avaliados)
e devolve uma tupla com um valor por output solicitado.

Variantes suportadas (discriminadas por `task.kind`):
    - CALLABLE → chamada posicional de uma função Python
    - COMMAND  → processo externo via shell, captura de stdout/stderr
    - JOB      → aplicação de pares (locator, valor) e execução pelo JobExecutor

Aridade:
    - callable: derivada da anotação de retorno (None → 0, Tuple[a, b] → 2,
      outra → 1); sem anotação vale a aridade solicitada
    - aridade 0: o texto impresso em stdout é o único output
    - o resultado é normalizado para `max(aridade, solicitada)` valores,
      completando com None

Invariantes:
    - Toda exceção levantada aqui chega ao chamador como TaskError
      (exceção original encadeada em `__cause__`)
    - O job declarado nunca é mutado (cada dispatch usa `task.fresh()`)

Limites explícitos:
    - Não avalia Deferred (ver `lazy`)
    - Não grava no OutputStore
    - Não aplica timeout a commands
"""

from __future__ import annotations

import contextlib
import inspect
import io
import subprocess
import typing
from typing import Any, Callable, List, Optional, Sequence, Tuple

from pebl_flow.core.addressing import apply, as_address, get, is_pattern, resolve_all
from pebl_flow.core.errors import (
    ADDRESS_NOT_FOUND,
    TASK_COMMAND_FAILED,
    TASK_EXECUTION_ERROR,
    TASK_JOB_FAILED,
)
from pebl_flow.core.exceptions import AddressError, TaskError
from pebl_flow.core.jobs import JobExecutor, Linkage
from pebl_flow.core.pipeline.context import RunContext, task_step_id
from pebl_flow.core.pipeline.types import CallableTask, CommandTask, JobTask, Task, TaskKind


# ---------------------------------------------------------------------------
# Aridade de callables
# ---------------------------------------------------------------------------

def callable_arity(fn: Callable[..., Any]) -> Optional[int]:
    """
    Aridade declarada pela anotação de retorno, ou None quando ausente.

    Anotações em forma de string (`from __future__ import annotations`)
    são resolvidas com `typing.get_type_hints` quando possível.
    """
    try:
        hints = typing.get_type_hints(fn)
        ret = hints.get("return", inspect.Signature.empty)
    except Exception:
        try:
            ret = inspect.signature(fn).return_annotation
        except (TypeError, ValueError):
            return None

    if ret is inspect.Signature.empty:
        return None
    if ret is None or ret is type(None) or ret == "None":
        return 0
    if typing.get_origin(ret) is tuple:
        args = typing.get_args(ret)
        if args and args[-1] is not Ellipsis and args != ((),):
            return len(args)
    return 1


def _pad(values: Sequence[Any], size: int) -> Tuple[Any, ...]:
    values = list(values)[:size]
    return tuple(values + [None] * (size - len(values)))


def _run_callable(task: CallableTask, bound: List[Any], n_out: int) -> Tuple[Any, ...]:
    arity = callable_arity(task.fn)

    if arity == 0:
        buffer = io.StringIO()
        with contextlib.redirect_stdout(buffer):
            task.fn(*bound)
        return _pad([buffer.getvalue()], max(1, n_out))

    result = task.fn(*bound)
    if arity is None:
        arity = n_out
        produced = list(result) if arity > 1 and isinstance(result, tuple) else [result]
    elif arity > 1:
        produced = list(result) if isinstance(result, (tuple, list)) else [result]
    else:
        produced = [result]
    return _pad(produced, max(arity, n_out, 1))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def command_line(task: CommandTask, bound: Sequence[Any]) -> str:
    if not bound:
        return task.command
    return task.command + " " + " ".join(str(o) for o in bound)


def split_columns(text: str, n_out: int) -> Tuple[str, ...]:
    """
    Divide a saída de um command em `n_out` colunas.

    A coluna k junta (com quebra de linha) o k-ésimo token de cada linha
    não vazia; tokens ausentes valem "".
    """
    lines = [line.split() for line in text.splitlines() if line.strip()]
    return tuple(
        "\n".join(tokens[k] if k < len(tokens) else "" for tokens in lines)
        for k in range(n_out)
    )


def _run_command(task: CommandTask, bound: List[Any], n_out: int) -> Tuple[Any, ...]:
    cmd = command_line(task, bound)
    completed = subprocess.run(cmd, shell=True, capture_output=True, text=True)
    text = completed.stdout + completed.stderr
    if completed.returncode != 0:
        raise TaskError(
            f"Command terminou com status {completed.returncode}: {cmd}",
            details={"command": cmd, "returncode": completed.returncode, "output": text},
            code=TASK_COMMAND_FAILED,
        )
    if n_out > 1:
        if not completed.stdout.strip():
            return (None,) * n_out
        return split_columns(completed.stdout, n_out)
    return (completed.stdout,)


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------

def _fit_leaf(job: Any, address, value: Any) -> Any:
    try:
        current = get(job, address)
    except AddressError:
        return value
    if isinstance(current, list) and not isinstance(value, (list, tuple)):
        return [value]
    return value


def apply_job_options(
    job: Any,
    options: Sequence[Any],
    *,
    skip: Optional[Callable[[Any], bool]] = None,
) -> Any:
    """
    Aplica pares `(locator, valor)` sobre o job (in place).

    - locator padrão → aplica em todas as correspondências
    - folha lista recebendo escalar → `[valor]`
    - `skip(valor)` verdadeiro → par ignorado
    """
    for locator, value in zip(options[0::2], options[1::2]):
        if skip is not None and skip(value):
            continue
        addresses = resolve_all(job, locator) if is_pattern(locator) else [as_address(locator)]
        for address in addresses:
            job = apply(job, address, _fit_leaf(job, address, value), inplace=True)
    return job


def job_dependencies(
    task: JobTask,
    executor: JobExecutor,
    *,
    skip: Optional[Callable[[Any], bool]] = None,
) -> Callable[[Sequence[Any]], Tuple[Any, Linkage]]:
    """Função `options → (job, linkage)` usada pelo avaliador antes dos Deferred de escopo TASK."""

    def compute(options: Sequence[Any]) -> Tuple[Any, Linkage]:
        job = apply_job_options(task.fresh(), options, skip=skip)
        return job, executor.dependencies(job)

    return compute


def _run_job(
    task: JobTask,
    bound: List[Any],
    n_out: int,
    executor: Optional[JobExecutor],
) -> Tuple[Any, ...]:
    if executor is None:
        raise TaskError(
            "Nenhum JobExecutor configurado para executar jobs",
            code=TASK_JOB_FAILED,
            hint="Informe job_executor ao Engine ou a feval",
        )
    job = apply_job_options(task.fresh(), bound)
    outcome = executor.execute(job)
    return outcome.harvest(max(n_out, 1))


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def signature(task: Task, bound: Sequence[Any]) -> str:
    """Assinatura legível de uma chamada (usada no modo verbose)."""
    if task.kind is TaskKind.COMMAND:
        return command_line(task, bound)
    return f"{task.name}({', '.join(repr(o) for o in bound)})"


def dispatch(
    task: Task,
    bound: List[Any],
    *,
    n_out: int = 1,
    verbose: bool = False,
    job_executor: Optional[JobExecutor] = None,
    ctx: Optional[RunContext] = None,
    task_index: int = 0,
) -> Tuple[Any, ...]:
    """
    Executa uma task com options já ligadas.

    Em modo verbose imprime a chamada e os valores produzidos; falhas não
    são ecoadas aqui (o Engine ecoa "<task> error: <mensagem>").

    Returns:
        Tupla com `max(aridade, n_out)` valores.

    Raises:
        TaskError: para qualquer falha durante a execução.
    """
    step_id = task_step_id(task_index)
    call = signature(task, bound)

    if verbose:
        print(call)
    if ctx is not None:
        ctx.log(step_id=step_id, level="debug", message="dispatch", call=call, kind=task.kind.value)

    try:
        if task.kind is TaskKind.CALLABLE:
            values = _run_callable(task, bound, n_out)
        elif task.kind is TaskKind.COMMAND:
            values = _run_command(task, bound, n_out)
        elif task.kind is TaskKind.JOB:
            values = _run_job(task, bound, n_out, job_executor)
        else:
            raise TaskError(f"Tipo de task não suportado: {task.kind!r}")
    except TaskError:
        raise
    except AddressError as e:
        raise TaskError(str(e), details=dict(e.details), hint=e.hint, code=ADDRESS_NOT_FOUND) from e
    except Exception as e:
        raise TaskError(
            f"{task.name}: {e}",
            details={"call": call},
            code=TASK_JOB_FAILED if task.kind is TaskKind.JOB else TASK_EXECUTION_ERROR,
        ) from e

    if verbose:
        for value in values:
            print(value)
    if ctx is not None:
        ctx.log(step_id=step_id, level="debug", message="dispatch_done", outputs=len(values))
    return values
