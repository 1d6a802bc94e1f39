"""
Atlas Converge — engine declarativo de convergência de recursos.

Este pacote raiz define o namespace público do Atlas Converge, um engine
que recebe declarações de recursos interdependentes (rede, regras de
segurança, credenciais geradas, instância de banco, objetos de segredo)
e converge a infraestrutura real para o estado declarado.

Princípios centrais:
    - As declarações formam um DAG explícito de recursos
    - O plano é determinístico e reprodutível para a mesma entrada
    - Estado aplicado só é gravado após confirmação do provider
    - Rastreabilidade de cada ação é um requisito de primeira classe

Arquitetura em alto nível:
    - core.config       → carregamento, merge, hashing e settings tipados
    - core.graph        → declarações, referências e construção do grafo
    - core.state        → snapshot versionado e State Store
    - core.engine       → planner, executor, refresh e gerador de segredos
    - core.providers    → interfaces de capacidade e adapters
    - core.traceability → Manifest de apply e Event Log
    - modules.database  → declarações do banco gerenciado do cluster

Limites explícitos:
    - Não implementa APIs de cloud nem clientes de secret store
    - Não interpreta linguagens de configuração (HCL ou similares)
    - Não expõe CLI

Este módulo existe para estabelecer o contrato conceitual e o namespace
do Atlas Converge.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
