"""
Field Addressor: resolução e aplicação de endereços em estruturas aninhadas.

Este módulo resolve locators contra containers aninhados (mappings,
sequências e combinações) e aplica valores em endereços resolvidos.

Formas de locator aceitas:
    - Address já resolvido
    - sequência estruturada de passos (`AddressStep`, `(kind, key)` ou
      chaves cruas: str → campo, int → índice)
    - string literal (`[0].spm.util.disp.data`)
    - padrão regex (`re.Pattern`, ou string contendo `\\ | ^ $ * + ?`),
      casado com `re.search` contra a forma literal de cada nó

Política de erros:
    - locator literal que não resolve → AddressError
    - padrão sem correspondência → lista vazia (não é erro)

Invariantes:
    - `apply` é puro por padrão: o container original não é mutado
      (cópia apenas ao longo do caminho); `inplace=True` muta o container
    - padrões retornam correspondências em ordem de documento
      (pré-ordem, profundidade primeiro)

Limites explícitos:
    - Não avalia Deferred
    - Não conhece tasks, jobs ou o Engine
"""

from __future__ import annotations

import re
from collections.abc import Mapping, MutableMapping, Sequence
from typing import Any, Callable, Iterator, List, Tuple, Union

from pebl_flow.core.exceptions import AddressError

from .address import Address, AddressStep, SelectorKind, format_address, parse_address


Locator = Union[Address, str, re.Pattern, Sequence[Any]]

_PATTERN_CHARS = re.compile(r"[\\|^$*+?]")


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def is_pattern(locator: Any) -> bool:
    """Indica se o locator é um padrão (pode casar múltiplos endereços)."""
    if isinstance(locator, re.Pattern):
        return True
    return isinstance(locator, str) and _PATTERN_CHARS.search(locator) is not None


def as_address(locator: Any) -> Address:
    """Converte um locator não-padrão em Address (sem consultar container)."""
    if isinstance(locator, Address):
        return locator
    if isinstance(locator, str):
        return parse_address(locator)
    if _is_sequence(locator):
        steps = []
        for item in locator:
            if isinstance(item, AddressStep):
                steps.append(item)
            elif isinstance(item, tuple) and len(item) == 2 and item[0] in ("key", "index"):
                steps.append(AddressStep(SelectorKind(item[0]), item[1]))
            else:
                steps.append(AddressStep.of(item))
        return Address(tuple(steps))
    raise AddressError(
        f"Locator não suportado: {type(locator).__name__}",
        details={"locator": repr(locator)},
    )


# ---------------------------------------------------------------------------
# Leitura
# ---------------------------------------------------------------------------

def _step_into(node: Any, step: AddressStep, address: Address) -> Any:
    if step.kind is SelectorKind.INDEX:
        if _is_sequence(node) and step.key < len(node):
            return node[step.key]
    elif isinstance(node, Mapping) and step.key in node:
        return node[step.key]
    raise AddressError(
        f"Endereço não resolve: {format_address(address)}",
        details={"address": format_address(address), "step": str(Address((step,)))},
        hint="O endereço pode estar obsoleto após edição estrutural do container",
    )


def get(container: Any, locator: Locator) -> Any:
    """Retorna o valor em um endereço literal. Levanta AddressError se não resolver."""
    address = as_address(locator)
    node = container
    for step in address:
        node = _step_into(node, step, address)
    return node


def walk(container: Any, prefix: Address = Address()) -> Iterator[Tuple[Address, Any]]:
    """Percorre todos os nós abaixo do container em ordem de documento (pré-ordem)."""
    if isinstance(container, Mapping):
        items = ((AddressStep(SelectorKind.KEY, k), v) for k, v in container.items() if isinstance(k, str))
    elif _is_sequence(container):
        items = ((AddressStep(SelectorKind.INDEX, i), v) for i, v in enumerate(container))
    else:
        return
    for step, value in items:
        address = prefix.child(step)
        yield address, value
        yield from walk(value, address)


def find(container: Any, predicate: Callable[[Any], bool]) -> List[Address]:
    """Endereços (ordem de documento) cujos valores satisfazem o predicado."""
    return [address for address, value in walk(container) if predicate(value)]


# ---------------------------------------------------------------------------
# Resolução
# ---------------------------------------------------------------------------

def resolve_all(container: Any, locator: Locator) -> List[Address]:
    """
    Resolve um locator em todos os endereços correspondentes.

    - padrão → todas as correspondências (lista possivelmente vazia)
    - literal → lista com um único endereço, ou AddressError
    """
    if is_pattern(locator):
        rx = locator if isinstance(locator, re.Pattern) else re.compile(locator)
        return [a for a, _ in walk(container) if rx.search(format_address(a))]
    address = as_address(locator)
    get(container, address)
    return [address]


def resolve(container: Any, locator: Locator) -> Address:
    """Resolve um locator em um único endereço (primeira correspondência para padrões)."""
    matches = resolve_all(container, locator)
    if not matches:
        raise AddressError(
            f"Nenhum endereço corresponde ao padrão: {locator if isinstance(locator, str) else locator.pattern}",
            details={"locator": repr(locator)},
        )
    return matches[0]


def select(container: Any, locator: Locator) -> Any:
    """Valor para locator literal; lista de valores para padrões."""
    if is_pattern(locator):
        return [get(container, a) for a in resolve_all(container, locator)]
    return get(container, locator)


def to_string(address: Address) -> str:
    return format_address(address)


def from_string(text: str, container: Any) -> List[Address]:
    """Forma literal ou padrão → endereços resolvidos contra o container."""
    return resolve_all(container, text)


# ---------------------------------------------------------------------------
# Aplicação
# ---------------------------------------------------------------------------

def _assign(node: Any, steps: Tuple[AddressStep, ...], value: Any, inplace: bool, address: Address) -> Any:
    if not steps:
        return value
    step, rest = steps[0], steps[1:]

    if step.kind is SelectorKind.INDEX:
        if not _is_sequence(node):
            if rest:
                raise AddressError(
                    f"Endereço não resolve: {format_address(address)}",
                    details={"address": format_address(address)},
                )
            # provisiona a sequência mínima no último passo
            node = []
        seq = node if inplace and isinstance(node, list) else list(node)
        if step.key >= len(seq):
            if rest:
                raise AddressError(
                    f"Índice fora do intervalo: {format_address(address)}",
                    details={"address": format_address(address), "length": len(seq)},
                )
            seq.extend([None] * (step.key - len(seq) + 1))
        seq[step.key] = _assign(seq[step.key], rest, value, inplace, address)
        if isinstance(node, tuple):
            return tuple(seq)
        return seq

    provisionable = len(rest) == 1 and rest[0].kind is SelectorKind.INDEX
    if not isinstance(node, Mapping) or (step.key not in node and not provisionable):
        raise AddressError(
            f"Endereço não resolve: {format_address(address)}",
            details={"address": format_address(address), "step": step.key},
        )
    mapping = node if inplace and isinstance(node, MutableMapping) else dict(node)
    mapping[step.key] = _assign(node.get(step.key), rest, value, inplace, address)
    return mapping


def apply(container: Any, locator: Locator, value: Any, *, inplace: bool = False) -> Any:
    """
    Aplica `value` no endereço e retorna o container resultante.

    Quando o último passo indexa uma sequência ainda inexistente naquela
    profundidade (campo ausente ou escalar), uma sequência mínima é criada.

    Raises:
        AddressError: se algum passo não resolver, inclusive uma chave final
            ausente (apply não cria campos novos).
    """
    address = as_address(locator)
    return _assign(container, address.steps, value, inplace, address)


def apply_all(container: Any, locator: Locator, value: Any, *, inplace: bool = False) -> Any:
    """Aplica `value` em todos os endereços do locator (padrões inclusos)."""
    if not is_pattern(locator):
        return apply(container, locator, value, inplace=inplace)
    for address in resolve_all(container, locator):
        container = apply(container, address, value, inplace=inplace)
    return container
