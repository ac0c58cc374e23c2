# src/pebl_flow/core/config/loader.py
"""
Loader de configuração do pebl-flow.

A configuração efetiva de uma run é resolvida a partir de:
    - um arquivo base (obrigatório), normalmente o próprio workflow
    - um arquivo local de overrides (opcional)

Formatos: YAML (.yaml, .yml) via PyYAML e JSON (.json).

Invariantes:
    - O arquivo base é obrigatório
    - O resultado é sempre um dicionário puro (`dict`)
    - Overrides nunca mutam a base

Limites explícitos:
    - Não interpreta a seção `engine` (ver `RunConfig.from_config`)
    - Não interpreta tasks (ver `workflow`)
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union
import json

import yaml  # PyYAML

from .errors import (
    ConfigNotFoundError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)
from .merge import deep_merge


PathLike = Union[str, Path]


def read_document(path: PathLike) -> Any:
    """
    Lê um documento YAML ou JSON sem restrição de tipo raiz.

    Arquivos vazios são lidos como None.

    Raises:
        ConfigNotFoundError: se o arquivo não existir.
        UnsupportedConfigFormatError: se a extensão não for suportada.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigNotFoundError(f"Arquivo não encontrado: {path}")

    suffix = path.suffix.lower()

    if suffix in {".yaml", ".yml"}:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f)

    if suffix == ".json":
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)

    raise UnsupportedConfigFormatError(f"Formato não suportado: {path.suffix}")


def _load_file(path: PathLike) -> Dict[str, Any]:
    data = read_document(path)

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(
            f"Config root deve ser dict, recebido: {type(data).__name__}"
        )

    return data


def load_config(
    *,
    defaults_path: PathLike,
    local_path: Optional[PathLike] = None,
) -> Dict[str, Any]:
    """
    Carrega e resolve a configuração efetiva.

    Política de resolução:
        - o arquivo base é obrigatório
        - o arquivo local é opcional; quando informado deve existir
        - o local sempre tem prioridade (deep-merge)

    Raises:
        ConfigNotFoundError: se algum arquivo informado não existir.
        UnsupportedConfigFormatError: se o formato não for suportado.
        InvalidConfigRootTypeError: se o conteúdo não for um dicionário.
        ConfigTypeConflictError: se ocorrer conflito estrutural no merge.
    """
    effective = _load_file(defaults_path)

    if local_path is not None:
        effective = deep_merge(effective, _load_file(local_path))

    return effective
