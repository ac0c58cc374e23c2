# src/pebl_flow/core/__init__.py
"""
Core do pebl-flow.

Este pacote reúne as responsabilidades essenciais do motor de automação:
declaração de tasks, endereçamento de campos, avaliação tardia de
expressões, despacho e orquestração de iterações.

Componentes principais:
    - addressing    → Field Addressor (endereços literais, padrões, apply)
    - pipeline      → tipos de task, registry, OutputStore e RunContext
    - engine        → planner, loop controller, avaliador, dispatcher, Engine
    - jobs          → protocolo de execução de jobs declarativos
    - collaborators → contratos de colaboradores externos
    - config        → carregamento e merge de configuração, arquivos de workflow

Princípios fundamentais:
    - Nenhuma decisão silenciosa: falhas sempre deixam mensagem registrada
    - Nenhum estado global: toda configuração é explícita (RunConfig)
"""
