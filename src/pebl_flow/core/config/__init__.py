# src/pebl_flow/core/config/__init__.py

"""
Camada de configuração do pebl-flow.

Responsabilidades do pacote:
    - Carregamento de arquivos YAML/JSON (base + overrides locais)
    - Resolução da configuração final via deep-merge determinístico
    - Leitura de arquivos de workflow (tasks, options, iterações, engine)

Invariantes:
    - A configuração final é um dicionário puro (dict)
    - Conflitos estruturais são tratados como erro (`ConfigError`)

Limites explícitos:
    - Não executa a run
"""
