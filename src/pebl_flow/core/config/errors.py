# src/pebl_flow/core/config/errors.py
"""
Exceções canônicas da camada de configuração do pebl-flow.

Cobrem o carregamento de arquivos de configuração, o deep-merge de
overrides e a leitura de arquivos de workflow.

Invariantes:
    - Todas as exceções de configuração herdam de `ConfigError`
    - Nenhuma exceção aqui representa falha de execução de task

Limites explícitos:
    - Não realiza fallback ou recovery
"""


class ConfigError(Exception):
    """
    Exceção base para erros de configuração e de workflow.

    Permite capturar genericamente qualquer falha estrutural detectada
    antes de a run começar.
    """


class ConfigNotFoundError(ConfigError):
    """Arquivo de configuração (ou de workflow) obrigatório não encontrado."""


class UnsupportedConfigFormatError(ConfigError):
    """
    Formato de arquivo não suportado.

    Formatos aceitos:
        - YAML (.yaml, .yml)
        - JSON (.json)
    """


class InvalidConfigRootTypeError(ConfigError):
    """O conteúdo raiz de um arquivo de configuração não é um mapping."""


class ConfigTypeConflictError(ConfigError):
    """
    Conflito de tipos durante o deep-merge.

    Exemplo:
        - base:     {"engine": {"loop": 2}}
        - override: {"engine": "fast"}
    """


class WorkflowError(ConfigError):
    """
    Arquivo de workflow estruturalmente inválido.

    Exemplos:
        - task sem exatamente uma das chaves `command`, `callable`, `job`
        - referência `modulo:atributo` que não pode ser importada
        - marcador `$output` com argumentos inválidos
    """
