"""
Adaptadores das interfaces de domínio para o contrato `ResourceProvider`.

Cada adaptador conhece o formato dos atributos de um tipo de recurso (como
declarado em `atlas_converge.modules.database`) e traduz create/update/
delete/read para as chamadas da interface de capacidade correspondente.

Tipos cobertos:
    - vpc (data)            → NetworkLookup
    - security_group        → SecurityGroupApi
    - security_group_rule   → IngressRuleApi
    - db_subnet_group       → SubnetGroupApi
    - db_parameter_group    → ParameterGroupApi
    - db_instance           → DBInstanceApi
    - secret_store_object   → SecretStore
    - random_password       → local (sem chamada remota)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from atlas_converge.core.exceptions import ProviderError
from atlas_converge.core.state.snapshot import StateEntry

from .interfaces import (
    DBInstanceApi,
    IngressRuleApi,
    NetworkLookup,
    ParameterGroupApi,
    SecretStore,
    SecurityGroupApi,
    SubnetGroupApi,
)


def _strings(values: Any) -> List[str]:
    return [str(v) for v in (values or [])]


class NetworkLookupProvider:
    """Fonte de dados: create e update apenas releem a rede."""

    def __init__(self, api: NetworkLookup):
        self.api = api

    def _lookup(self, vpc_id: str) -> Dict[str, Any]:
        found = self.api.lookup(vpc_id)
        return {
            "cidr": found.get("cidr") or "",
            "ipv6_cidr": found.get("ipv6_cidr") or "",
            "subnet_ids": _strings(found.get("subnet_ids")),
        }

    def create(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        return self._lookup(inputs["vpc_id"])

    def update(self, prior: StateEntry, inputs: Dict[str, Any]) -> Dict[str, Any]:
        return self._lookup(inputs["vpc_id"])

    def delete(self, prior: StateEntry) -> None:
        return None

    def read(self, prior: StateEntry) -> Optional[Dict[str, Any]]:
        return self._lookup(prior.inputs["vpc_id"])


class SecurityGroupProvider:
    def __init__(self, api: SecurityGroupApi):
        self.api = api

    def create(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        return dict(self.api.create(dict(inputs)))

    def update(self, prior: StateEntry, inputs: Dict[str, Any]) -> Dict[str, Any]:
        return dict(self.api.update(dict(inputs, id=prior.outputs["id"])))

    def delete(self, prior: StateEntry) -> None:
        self.api.delete(dict(prior.inputs, id=prior.outputs.get("id")))

    def read(self, prior: StateEntry) -> Optional[Dict[str, Any]]:
        return self.api.read(prior.outputs["id"])


class IngressRuleProvider:
    """Regras de ingress: alteração exige remover e recriar (Replace)."""

    def __init__(self, api: IngressRuleApi):
        self.api = api

    @staticmethod
    def _args(values: Dict[str, Any]) -> Tuple[str, str, Tuple[int, int], Dict[str, List[str]]]:
        sources = {
            "cidr_blocks": _strings(values.get("cidr_blocks")),
            "ipv6_cidr_blocks": _strings(values.get("ipv6_cidr_blocks")),
        }
        port_range = (int(values["from_port"]), int(values["to_port"]))
        return values["security_group_id"], values["protocol"], port_range, sources

    def create(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        return dict(self.api.create(*self._args(inputs)))

    def update(self, prior: StateEntry, inputs: Dict[str, Any]) -> Dict[str, Any]:
        raise ProviderError(
            message="Ingress rules cannot be updated in place",
            details={"address": prior.address},
            hint="Remova o override de update_policy; regras de ingress são sempre substituídas.",
        )

    def delete(self, prior: StateEntry) -> None:
        self.api.delete(*self._args(prior.inputs))

    def read(self, prior: StateEntry) -> Optional[Dict[str, Any]]:
        # A API não expõe leitura de regras individuais.
        return dict(prior.outputs)


class SubnetGroupProvider:
    def __init__(self, api: SubnetGroupApi):
        self.api = api

    def create(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        return dict(self.api.create(dict(inputs)))

    def update(self, prior: StateEntry, inputs: Dict[str, Any]) -> Dict[str, Any]:
        return dict(self.api.update(dict(inputs)))

    def delete(self, prior: StateEntry) -> None:
        self.api.delete(dict(prior.inputs))

    def read(self, prior: StateEntry) -> Optional[Dict[str, Any]]:
        return self.api.read(prior.inputs["name"])


class ParameterGroupProvider:
    def __init__(self, api: ParameterGroupApi):
        self.api = api

    def create(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        return dict(self.api.create(inputs["name"], inputs["family"], dict(inputs.get("parameters") or {})))

    def update(self, prior: StateEntry, inputs: Dict[str, Any]) -> Dict[str, Any]:
        return dict(self.api.update(inputs["name"], dict(inputs.get("parameters") or {})))

    def delete(self, prior: StateEntry) -> None:
        self.api.delete(prior.inputs["name"])

    def read(self, prior: StateEntry) -> Optional[Dict[str, Any]]:
        return self.api.read(prior.inputs["name"])


class DBInstanceProvider:
    def __init__(self, api: DBInstanceApi):
        self.api = api

    def create(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        return dict(self.api.create(dict(inputs)))

    def update(self, prior: StateEntry, inputs: Dict[str, Any]) -> Dict[str, Any]:
        return dict(self.api.update(dict(inputs)))

    def delete(self, prior: StateEntry) -> None:
        self.api.delete(dict(prior.inputs))

    def read(self, prior: StateEntry) -> Optional[Dict[str, Any]]:
        return self.api.read(prior.inputs["identifier"])


class SecretStoreProvider:
    """Objetos secretos são upserts: create e update chamam `put`."""

    def __init__(self, api: SecretStore):
        self.api = api

    def _put(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        namespace, name = inputs["namespace"], inputs["name"]
        data = {k: str(v) for k, v in (inputs.get("data") or {}).items()}
        self.api.put(namespace, name, data, kind=inputs.get("kind", "opaque"))
        return {"id": f"{namespace}/{name}"}

    def create(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        return self._put(inputs)

    def update(self, prior: StateEntry, inputs: Dict[str, Any]) -> Dict[str, Any]:
        return self._put(inputs)

    def delete(self, prior: StateEntry) -> None:
        self.api.delete(prior.inputs["namespace"], prior.inputs["name"])

    def read(self, prior: StateEntry) -> Optional[Dict[str, Any]]:
        if not self.api.exists(prior.inputs["namespace"], prior.inputs["name"]):
            return None
        return dict(prior.outputs)


class RandomPasswordProvider:
    """
    Recurso puramente local.

    O valor (`result`) é gerado pelo executor a partir do `SecretSpec` e
    gravado em `StateEntry.secrets`; este provider só confirma a operação.
    """

    def create(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        return {}

    def update(self, prior: StateEntry, inputs: Dict[str, Any]) -> Dict[str, Any]:
        return dict(prior.outputs)

    def delete(self, prior: StateEntry) -> None:
        return None

    def read(self, prior: StateEntry) -> Optional[Dict[str, Any]]:
        return dict(prior.outputs)
