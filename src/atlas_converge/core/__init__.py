"""
Core do Atlas Converge.

Este pacote reúne as responsabilidades essenciais de um engine de
convergência: construção do grafo de recursos, planejamento por diff,
execução controlada via providers e persistência do estado aplicado.

O core é projetado para ser:
    - determinístico
    - testável de forma isolada (providers são interfaces)
    - livre de clientes de cloud concretos
    - orientado a contratos explícitos

Componentes principais:
    - config       → resolução de configuração (merge, hashing, settings)
    - graph        → Resource, Ref, Computed e ResourceGraph
    - state        → StateSnapshot versionado e StateStore serializado
    - engine       → planner, executor, refresh e segredos
    - providers    → Protocols de capacidade, adapters e registry
    - traceability → Manifest de apply e Event Log

Princípios fundamentais:
    - Nenhuma decisão silenciosa: todo comportamento é explícito e testado
    - Estado só reflete mudanças confirmadas pelo provider
    - Falhas não desfazem infraestrutura automaticamente

Este pacote existe como a fonte de verdade operacional do Atlas Converge.
"""
