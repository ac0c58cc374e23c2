"""
Field Addressor do pebl-flow.

Este pacote resolve expressões de caminho (literais, padrões regex ou
sequências estruturadas de passos) contra estruturas aninhadas e aplica
valores nos endereços resolvidos.

Componentes:
    - address   → `Address`, `AddressStep`, forma literal (parse/format)
    - addressor → resolve, resolve_all, apply, walk, find, select

É a base utilizada pelo avaliador de Deferred (localização de expressões
dentro de options) e pelo dispatcher de jobs (parâmetros em folhas).
"""

from .address import Address, AddressStep, SelectorKind, format_address, parse_address
from .addressor import (
    Locator,
    apply,
    apply_all,
    as_address,
    find,
    from_string,
    get,
    is_pattern,
    resolve,
    resolve_all,
    select,
    to_string,
    walk,
)

__all__ = [
    "Address",
    "AddressStep",
    "SelectorKind",
    "format_address",
    "parse_address",
    "Locator",
    "apply",
    "apply_all",
    "as_address",
    "find",
    "from_string",
    "get",
    "is_pattern",
    "resolve",
    "resolve_all",
    "select",
    "to_string",
    "walk",
]
