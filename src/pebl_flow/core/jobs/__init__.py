# src/pebl_flow/core/jobs/__init__.py
"""
Jobs declarativos do pebl-flow.

Componentes:
    - executor → protocolo JobExecutor, JobOutcome e ModuleJobExecutor
"""

from .executor import JobExecutor, JobModule, JobOutcome, Linkage, ModuleJobExecutor, module_entry

__all__ = [
    "JobExecutor",
    "JobModule",
    "JobOutcome",
    "Linkage",
    "ModuleJobExecutor",
    "module_entry",
]
