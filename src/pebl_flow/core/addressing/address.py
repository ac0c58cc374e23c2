"""
Tipo canônico de endereço de campo (Field Address).

Um `Address` é uma sequência ordenada e imutável de passos
(`AddressStep`) que descreve um caminho dentro de uma estrutura aninhada
de mappings e sequências. Cada passo é:
    - KEY   → campo de um mapping (`.data`, `["my key"]`)
    - INDEX → elemento de uma sequência (`[0]`)

Forma literal (string) canônica:
    [0].spm.util.disp.data[1]
    jobs["output dir"][0]

Regras de formatação:
    - chaves identificadoras usam ponto (sem ponto no primeiro passo)
    - demais chaves string usam colchetes com aspas duplas (JSON)
    - índices são inteiros não negativos entre colchetes

Invariantes:
    - `parse_address(format_address(a)) == a` para todo Address válido
    - `format_address(parse_address(s))` é a forma normalizada de `s`

Limites explícitos:
    - Não acessa containers (ver `addressor`)
    - Não interpreta padrões regex
"""

from __future__ import annotations

import ast
import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Tuple, Union

from pebl_flow.core.exceptions import AddressError


class SelectorKind(str, Enum):
    """Tipo do seletor de um passo de endereço."""
    KEY = "key"
    INDEX = "index"


@dataclass(frozen=True)
class AddressStep:
    """Um passo (seletor de container, chave/índice) de um Address."""

    kind: SelectorKind
    key: Union[str, int]

    def __post_init__(self) -> None:
        if self.kind is SelectorKind.INDEX:
            if isinstance(self.key, bool) or not isinstance(self.key, int) or self.key < 0:
                raise AddressError(
                    f"Índice de endereço inválido: {self.key!r}",
                    details={"key": repr(self.key)},
                )
        elif not isinstance(self.key, str):
            raise AddressError(
                f"Chave de endereço deve ser str, recebido: {type(self.key).__name__}",
                details={"key": repr(self.key)},
            )

    @classmethod
    def of(cls, key: Union[str, int]) -> "AddressStep":
        """str → KEY, int → INDEX."""
        if isinstance(key, int) and not isinstance(key, bool):
            return cls(SelectorKind.INDEX, key)
        return cls(SelectorKind.KEY, key)


@dataclass(frozen=True)
class Address:
    """Caminho resolvido dentro de uma estrutura aninhada."""

    steps: Tuple[AddressStep, ...] = ()

    @classmethod
    def of(cls, *keys: Union[str, int, AddressStep]) -> "Address":
        return cls(tuple(k if isinstance(k, AddressStep) else AddressStep.of(k) for k in keys))

    @classmethod
    def parse(cls, text: str) -> "Address":
        return parse_address(text)

    def child(self, key: Union[str, int, AddressStep]) -> "Address":
        step = key if isinstance(key, AddressStep) else AddressStep.of(key)
        return Address(self.steps + (step,))

    @property
    def parent(self) -> "Address":
        return Address(self.steps[:-1])

    @property
    def last(self) -> AddressStep:
        if not self.steps:
            raise AddressError("Endereço raiz não possui último passo")
        return self.steps[-1]

    def is_root(self) -> bool:
        return not self.steps

    def startswith(self, other: "Address") -> bool:
        return self.steps[: len(other.steps)] == other.steps

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[AddressStep]:
        return iter(self.steps)

    def __add__(self, other: "Address") -> "Address":
        return Address(self.steps + other.steps)

    def __str__(self) -> str:
        return format_address(self)


# ---------------------------------------------------------------------------
# Forma literal
# ---------------------------------------------------------------------------

_IDENT = re.compile(r"[A-Za-z_][A-Za-z0-9_]*\Z")
_LEAD_NAME = re.compile(r"\s*([A-Za-z_][A-Za-z0-9_]*)")
_DOT_NAME = re.compile(r"\s*\.\s*([A-Za-z_][A-Za-z0-9_]*)")
_INDEX = re.compile(r"\s*\[\s*(\d+)\s*\]")
_QUOTED = re.compile(r"""\s*\[\s*("(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')\s*\]""")


def format_address(address: Address) -> str:
    """Converte um Address na sua forma literal canônica."""
    parts = []
    for i, step in enumerate(address.steps):
        if step.kind is SelectorKind.INDEX:
            parts.append(f"[{step.key}]")
        elif _IDENT.match(step.key):
            parts.append(step.key if i == 0 else f".{step.key}")
        else:
            parts.append(f"[{json.dumps(step.key, ensure_ascii=False)}]")
    return "".join(parts)


def parse_address(text: str) -> Address:
    """
    Converte uma forma literal em Address.

    Espaços entre passos são tolerados e descartados (normalização).
    A string vazia representa o endereço raiz.

    Raises:
        AddressError: se a string não for uma forma literal válida.
    """
    if not isinstance(text, str):
        raise AddressError(f"Locator literal deve ser str, recebido: {type(text).__name__}")

    steps = []
    pos = 0
    end = len(text.rstrip())
    while pos < end:
        m = _DOT_NAME.match(text, pos)
        if m is None and not steps:
            m = _LEAD_NAME.match(text, pos)
        if m is not None:
            steps.append(AddressStep(SelectorKind.KEY, m.group(1)))
            pos = m.end()
            continue

        m = _INDEX.match(text, pos)
        if m is not None:
            steps.append(AddressStep(SelectorKind.INDEX, int(m.group(1))))
            pos = m.end()
            continue

        m = _QUOTED.match(text, pos)
        if m is not None:
            steps.append(AddressStep(SelectorKind.KEY, ast.literal_eval(m.group(1))))
            pos = m.end()
            continue

        raise AddressError(
            f"Locator literal inválido: {text!r} (posição {pos})",
            details={"locator": text, "position": pos},
            hint="Use a forma [0].campo.sub[1] ou [\"chave com espaço\"]",
        )
    return Address(tuple(steps))
