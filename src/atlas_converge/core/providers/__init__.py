"""
Camada de providers do Atlas Converge.

Componentes:
    - base        → contrato genérico `ResourceProvider` usado pelo executor
    - interfaces  → interfaces de capacidade de domínio (rede, banco, secret store)
    - adapters    → tradução das interfaces de domínio para o contrato genérico
    - registry    → `ProviderRegistry` indexado por tipo de recurso

Limites explícitos:
    - Não implementa clientes de nenhuma nuvem ou secret store
"""

from .adapters import (
    DBInstanceProvider,
    IngressRuleProvider,
    NetworkLookupProvider,
    ParameterGroupProvider,
    RandomPasswordProvider,
    SecretStoreProvider,
    SecurityGroupProvider,
    SubnetGroupProvider,
)
from .base import ResourceProvider
from .interfaces import (
    DBInstanceApi,
    IngressRuleApi,
    NetworkLookup,
    ParameterGroupApi,
    SecretStore,
    SecurityGroupApi,
    SubnetGroupApi,
)
from .registry import ProviderRegistry, database_providers

__all__ = [
    "DBInstanceApi",
    "DBInstanceProvider",
    "IngressRuleApi",
    "IngressRuleProvider",
    "NetworkLookup",
    "NetworkLookupProvider",
    "ParameterGroupApi",
    "ParameterGroupProvider",
    "ProviderRegistry",
    "RandomPasswordProvider",
    "ResourceProvider",
    "SecretStore",
    "SecretStoreProvider",
    "SecurityGroupApi",
    "SecurityGroupProvider",
    "SubnetGroupApi",
    "SubnetGroupProvider",
    "database_providers",
]
