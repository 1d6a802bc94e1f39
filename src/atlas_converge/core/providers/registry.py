"""
Registro de providers por tipo de recurso.

O `ProviderRegistry` é consultado pelo executor e pelo refresh para
encontrar o `ResourceProvider` responsável por um tipo. A ausência de um
provider é um erro de configuração do engine, detectado antes de qualquer
chamada remota.

Decisões arquiteturais:
    - `random_password` é pré-registrado (recurso local, sem API remota)
    - Registrar o mesmo tipo duas vezes é erro, salvo `replace=True`
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from atlas_converge.core.exceptions import EngineConfigurationError

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


def _builtin_providers() -> Dict[str, ResourceProvider]:
    return {"random_password": RandomPasswordProvider()}


@dataclass
class ProviderRegistry:
    _providers: Dict[str, ResourceProvider] = field(default_factory=_builtin_providers, repr=False)

    def register(self, resource_type: str, provider: ResourceProvider, *, replace: bool = False) -> None:
        if not isinstance(resource_type, str) or not resource_type.strip():
            raise ValueError("resource_type must be a non-empty string")
        if resource_type in self._providers and not replace:
            raise EngineConfigurationError(
                message=f"Provider already registered for '{resource_type}'",
                details={"resource_type": resource_type},
                hint="Use replace=True para substituir o provider explicitamente.",
            )
        self._providers[resource_type] = provider

    def get(self, resource_type: str) -> ResourceProvider:
        try:
            return self._providers[resource_type]
        except KeyError:
            raise EngineConfigurationError(
                message=f"No provider registered for resource type '{resource_type}'",
                details={"resource_type": resource_type, "registered": self.types()},
                hint="Registre um provider para o tipo antes do apply.",
            ) from None

    def __contains__(self, resource_type: object) -> bool:
        return resource_type in self._providers

    def types(self) -> List[str]:
        return sorted(self._providers)

    def missing(self, resource_types: Iterable[str]) -> List[str]:
        return sorted({t for t in resource_types if t not in self._providers})


def database_providers(
    *,
    network: NetworkLookup,
    security_groups: SecurityGroupApi,
    ingress_rules: IngressRuleApi,
    subnet_groups: SubnetGroupApi,
    parameter_groups: ParameterGroupApi,
    db_instances: DBInstanceApi,
    secret_store: SecretStore,
) -> ProviderRegistry:
    """Registry com todos os tipos usados pelo módulo de banco de dados."""
    registry = ProviderRegistry()
    registry.register("vpc", NetworkLookupProvider(network))
    registry.register("security_group", SecurityGroupProvider(security_groups))
    registry.register("security_group_rule", IngressRuleProvider(ingress_rules))
    registry.register("db_subnet_group", SubnetGroupProvider(subnet_groups))
    registry.register("db_parameter_group", ParameterGroupProvider(parameter_groups))
    registry.register("db_instance", DBInstanceProvider(db_instances))
    registry.register("secret_store_object", SecretStoreProvider(secret_store))
    return registry
