# src/pebl_flow/core/jobs/executor.py
"""
Executor de jobs declarativos do pebl-flow.

Um job é uma lista de módulos, cada um um mapping de chave única
`{nome_do_modulo: {parametros}}`. O executor roda os módulos em ordem e
informa, por módulo, onde ficam os outputs dentro do valor produzido
(linkage de dependências).

Responsabilidades:
    - Definir o protocolo `JobExecutor` consumido pelo dispatcher
    - Fornecer `ModuleJobExecutor`, baseado em um registry de módulos Python

Invariantes:
    - `dependencies(job)` não executa nenhum módulo
    - `execute(job)` devolve exatamente um valor e uma linkage por módulo
    - O job recebido não é mutado

Limites explícitos:
    - Não aplica options ao job (ver dispatcher)
    - Não decide política de erro
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Protocol, Sequence, Tuple

from pebl_flow.core.addressing import Address, Locator, as_address, get
from pebl_flow.core.errors import TASK_JOB_FAILED
from pebl_flow.core.exceptions import TaskError


Linkage = List[List[Address]]


@dataclass(frozen=True)
class JobOutcome:
    """Resultado de um job: valor de cada módulo e seus endereços de output."""

    values: List[Any]
    linkage: Linkage

    def harvest(self, n_out: int) -> Tuple[Any, ...]:
        """
        Colhe `n_out` outputs, módulo a módulo.

        O output `x` é o valor do módulo `x` nos endereços da linkage:
        um único endereço produz o valor, vários produzem uma lista.
        Módulos ausentes, valores None e linkage vazia produzem None.
        """
        harvested: List[Any] = []
        for x in range(n_out):
            value = self.values[x] if x < len(self.values) else None
            addresses = self.linkage[x] if x < len(self.linkage) else []
            if value is None or not addresses:
                harvested.append(None)
                continue
            picked = [get(value, a) for a in addresses]
            harvested.append(picked[0] if len(picked) == 1 else picked)
        return tuple(harvested)


class JobExecutor(Protocol):
    def execute(self, job: Sequence[Mapping[str, Any]]) -> JobOutcome:
        ...

    def dependencies(self, job: Sequence[Mapping[str, Any]]) -> Linkage:
        ...


@dataclass(frozen=True)
class JobModule:
    """Módulo de job: função chamada com os parâmetros do módulo como kwargs."""

    fn: Callable[..., Any]
    outputs: Sequence[Locator] = field(default_factory=tuple)


def module_entry(module: Any, position: int) -> Tuple[str, Mapping[str, Any]]:
    """Desembrulha `{nome: {parametros}}` validando o formato."""
    if not isinstance(module, Mapping) or len(module) != 1:
        raise TaskError(
            f"Módulo {position} do job deve ser um mapping de chave única",
            details={"module": position, "received": repr(module)},
            code=TASK_JOB_FAILED,
        )
    (name, params), = module.items()
    if params is None:
        params = {}
    if not isinstance(params, Mapping):
        raise TaskError(
            f"Parâmetros do módulo '{name}' devem ser um mapping",
            details={"module": position, "name": name},
            code=TASK_JOB_FAILED,
        )
    return name, params


class ModuleJobExecutor:
    """
    JobExecutor baseado em um registry `{nome: JobModule}`.

    Cada módulo é executado como `fn(**params)`. Módulos sem outputs
    declarados expõem o próprio valor (endereço raiz).
    """

    def __init__(self, modules: Mapping[str, JobModule]):
        self._modules: Dict[str, JobModule] = dict(modules)

    def _module(self, name: str, position: int) -> JobModule:
        if name not in self._modules:
            raise TaskError(
                f"Módulo de job desconhecido: '{name}'",
                details={"module": position, "name": name, "known": sorted(self._modules)},
                code=TASK_JOB_FAILED,
                hint="Registre o módulo no ModuleJobExecutor",
            )
        return self._modules[name]

    def dependencies(self, job: Sequence[Mapping[str, Any]]) -> Linkage:
        linkage: Linkage = []
        for position, module in enumerate(job):
            name, _ = module_entry(module, position)
            outputs = self._module(name, position).outputs
            linkage.append([as_address(o) for o in outputs] or [Address()])
        return linkage

    def execute(self, job: Sequence[Mapping[str, Any]]) -> JobOutcome:
        values = []
        for position, module in enumerate(job):
            name, params = module_entry(module, position)
            values.append(self._module(name, position).fn(**params))
        return JobOutcome(values=values, linkage=self.dependencies(job))
