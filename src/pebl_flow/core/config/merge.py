# src/pebl_flow/core/config/merge.py
"""
Deep-merge de configuração do pebl-flow.

Política de merge:
    - dict + dict → merge recursivo por chave
    - list        → sobrescrita total
    - None        → em qualquer lado, o override prevalece
    - escalar     → sobrescrita direta (tipos devem coincidir)
    - conflito de tipos → ConfigTypeConflictError

Invariantes:
    - Nenhum input é mutado
    - A mesma entrada sempre produz a mesma saída
"""

from copy import deepcopy
from typing import Any, Dict

from .errors import ConfigTypeConflictError


def _compatible(base_value: Any, override_value: Any) -> bool:
    if base_value is None or override_value is None:
        return True
    if type(base_value) is type(override_value):
        return True
    # int sobre float é aceito
    return isinstance(base_value, float) and isinstance(override_value, int) and not isinstance(override_value, bool)


def deep_merge(base: Dict[str, Any], override: Dict[str, Any], *, path: str = "") -> Dict[str, Any]:
    """
    Combina `override` sobre `base` sem mutar nenhum dos dois.

    Args:
        base: Configuração base (ex.: seção `engine` do workflow).
        override: Overrides explícitos (ex.: arquivo local).
        path: Prefixo de chave usado nas mensagens de erro.

    Returns:
        Novo dicionário resultante.

    Raises:
        ConfigTypeConflictError: se uma mesma chave tiver tipos incompatíveis.
    """
    if not isinstance(base, dict) or not isinstance(override, dict):
        raise ConfigTypeConflictError(
            f"Deep-merge requer dicts, recebido: "
            f"{type(base).__name__} vs {type(override).__name__}"
        )

    result: Dict[str, Any] = deepcopy(base)

    for key, override_value in override.items():
        where = f"{path}.{key}" if path else str(key)

        if key not in result:
            result[key] = deepcopy(override_value)
            continue

        base_value = result[key]

        if isinstance(base_value, dict) and isinstance(override_value, dict):
            result[key] = deep_merge(base_value, override_value, path=where)
            continue

        if isinstance(override_value, list) and (base_value is None or isinstance(base_value, list)):
            result[key] = deepcopy(override_value)
            continue

        if not _compatible(base_value, override_value):
            raise ConfigTypeConflictError(
                f"Conflito de tipo na chave '{where}': "
                f"{type(base_value).__name__} vs {type(override_value).__name__}"
            )

        result[key] = deepcopy(override_value)

    return result
