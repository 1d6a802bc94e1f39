"""
Interfaces de capacidade dos providers de domínio.

Estas interfaces descrevem o que o engine precisa de uma nuvem e de um
secret store, sem amarrar a implementação a um SDK específico. Clientes
reais (boto3, SDK de Kubernetes, etc.) ficam fora deste pacote; os testes
usam fakes em memória.

Convenções:
    - `spec` é um dict com os atributos declarados já resolvidos
    - métodos de leitura retornam `None` quando o recurso não existe
    - falhas recuperáveis devem ser levantadas como
      `ProviderError(transient=True)`
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Tuple


class NetworkLookup(Protocol):
    """Consulta somente-leitura da rede onde o banco será alocado."""

    def lookup(self, vpc_id: str) -> Dict[str, Any]:
        """Retorna `{"cidr", "ipv6_cidr", "subnet_ids"}`; CIDRs ausentes vêm como string vazia."""


class SecurityGroupApi(Protocol):
    def create(self, spec: Dict[str, Any]) -> Dict[str, Any]:
        """Cria o grupo e retorna `{"id": ...}`."""

    def update(self, spec: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def delete(self, spec: Dict[str, Any]) -> None:
        ...

    def read(self, group_id: str) -> Optional[Dict[str, Any]]:
        ...


class IngressRuleApi(Protocol):
    """Regras de ingress só suportam criação e remoção."""

    def create(
        self,
        group_id: str,
        protocol: str,
        port_range: Tuple[int, int],
        sources: Dict[str, List[str]],
    ) -> Dict[str, Any]:
        ...

    def delete(
        self,
        group_id: str,
        protocol: str,
        port_range: Tuple[int, int],
        sources: Dict[str, List[str]],
    ) -> None:
        ...


class SubnetGroupApi(Protocol):
    def create(self, spec: Dict[str, Any]) -> Dict[str, Any]:
        """Cria o subnet group e retorna `{"name": ...}`."""

    def update(self, spec: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def delete(self, spec: Dict[str, Any]) -> None:
        ...

    def read(self, name: str) -> Optional[Dict[str, Any]]:
        ...


class ParameterGroupApi(Protocol):
    def create(self, name: str, family: str, params: Dict[str, str]) -> Dict[str, Any]:
        ...

    def update(self, name: str, params: Dict[str, str]) -> Dict[str, Any]:
        ...

    def delete(self, name: str) -> None:
        ...

    def read(self, name: str) -> Optional[Dict[str, Any]]:
        ...


class DBInstanceApi(Protocol):
    """
    Instância gerenciada de banco relacional.

    `spec` carrega storage (inicial/máximo), engine e versão, classe da
    instância, credenciais master, parameter group, subnet group, grupos
    de segurança, availability zone e a flag de aplicação imediata.
    """

    def create(self, spec: Dict[str, Any]) -> Dict[str, Any]:
        """Cria a instância e retorna `{"address": ..., "port": ...}`."""

    def update(self, spec: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def delete(self, spec: Dict[str, Any]) -> None:
        ...

    def read(self, identifier: str) -> Optional[Dict[str, Any]]:
        ...


class SecretStore(Protocol):
    def put(self, namespace: str, name: str, data: Dict[str, str], kind: str = "opaque") -> None:
        """Cria ou substitui o objeto secreto `namespace/name`."""

    def delete(self, namespace: str, name: str) -> None:
        ...

    def exists(self, namespace: str, name: str) -> bool:
        ...
