"""
Módulo de banco de dados gerenciado para uma aplicação em cluster.

Declara, a partir de `DatabaseSettings`, o conjunto de recursos que o
engine converge:

    data.vpc.network                       lookup da rede (CIDR, subnets)
    security_group.db                      grupo do banco na VPC
    security_group_rule.db_ingress         TCP na porta do banco a partir do CIDR da VPC
    db_subnet_group.db                     subnets da VPC
    db_parameter_group.db                  parâmetros ajustados do engine SQL
    random_password.master / .app          credenciais geradas
    db_instance.db                         instância gerenciada
    secret_store_object.master_credentials credenciais master distribuídas
    secret_store_object.app_credentials    credenciais da aplicação

Todas as dependências entre recursos são expressas por referências; a
ordem de declaração abaixo só desempata a ordem de aplicação.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from atlas_converge.core.config.settings import (
    DatabaseSettings,
    SecretSettings,
    database_settings_from_config,
    secret_settings_from_config,
)
from atlas_converge.core.graph.resource import (
    Computed,
    Resource,
    ResourceMode,
    SecretSpec,
)


def cidr_list(cidr: Optional[str]) -> List[str]:
    """Um CIDR vazio nunca vira `[""]` numa regra de ingress."""
    return [cidr] if cidr else []


def _credentials(
    *,
    namespace: str,
    name: str,
    username: str,
    password: Any,
    db: Resource,
    dbname: str,
) -> Dict[str, Any]:
    return {
        "namespace": namespace,
        "name": name,
        "kind": "opaque",
        "data": {
            "username": username,
            "password": password,
            "host": db.ref("address"),
            "port": db.ref("port"),
            "dbname": dbname,
        },
    }


def declare_database(settings: DatabaseSettings, secrets: Optional[SecretSettings] = None) -> List[Resource]:
    """
    Produz as declarações do banco em ordem de declaração.

    Args:
        settings: Superfície de configuração do banco.
        secrets: Tamanho e exclusões das senhas geradas (padrão: 32
            caracteres, sem `/`, `@`, `"` e espaço).

    Returns:
        Lista de `Resource` pronta para `build_graph`.
    """
    secrets = secrets or SecretSettings()
    prefix = settings.name_prefix
    tags = dict(settings.tags, environment=settings.environment, application=settings.application)
    dbname = settings.application.replace("-", "_")

    network = Resource(
        type="vpc",
        name="network",
        mode=ResourceMode.DATA,
        attributes={"vpc_id": settings.vpc_id},
        outputs=("cidr", "ipv6_cidr", "subnet_ids"),
    )

    security_group = Resource(
        type="security_group",
        name="db",
        attributes={
            "name": f"{prefix}-db",
            "description": f"Database access for {prefix}",
            "vpc_id": network.ref("vpc_id"),
            "tags": tags,
        },
        outputs=("id",),
    )

    ingress = Resource(
        type="security_group_rule",
        name="db_ingress",
        attributes={
            "security_group_id": security_group.ref("id"),
            "type": "ingress",
            "protocol": "tcp",
            "from_port": settings.port,
            "to_port": settings.port,
            "cidr_blocks": Computed(cidr_list, network.ref("cidr")),
            "ipv6_cidr_blocks": Computed(cidr_list, network.ref("ipv6_cidr")),
        },
        outputs=("id",),
    )

    subnet_group = Resource(
        type="db_subnet_group",
        name="db",
        attributes={
            "name": f"{prefix}-db",
            "description": f"Subnets for {prefix} database",
            "subnet_ids": network.ref("subnet_ids"),
            "tags": tags,
        },
    )

    parameter_group = Resource(
        type="db_parameter_group",
        name="db",
        attributes={
            "name": f"{prefix}-db",
            "family": settings.parameter_group_family,
            "description": f"Tuned parameters for {prefix}",
            "parameters": dict(settings.parameters),
        },
    )

    spec = SecretSpec(length=secrets.length, special=True, exclude_characters=secrets.exclude_characters)
    master_password = Resource(
        type="random_password",
        name="master",
        attributes={"length": spec.length, "special": spec.special},
        secrets={"result": spec},
    )
    app_password = Resource(
        type="random_password",
        name="app",
        attributes={"length": spec.length, "special": spec.special},
        secrets={"result": spec},
    )

    attributes: Dict[str, Any] = {
        "identifier": f"{prefix}-db",
        "engine": settings.engine,
        "engine_version": settings.engine_version,
        "instance_class": settings.instance_class,
        "allocated_storage": settings.allocated_storage,
        "max_allocated_storage": settings.max_allocated_storage,
        "db_name": dbname,
        "username": settings.master_username,
        "password": master_password.ref("result"),
        "port": settings.port,
        "parameter_group_name": parameter_group.ref("name"),
        "db_subnet_group_name": subnet_group.ref("name"),
        "vpc_security_group_ids": [security_group.ref("id")],
        "apply_immediately": settings.apply_immediately,
        "storage_encrypted": True,
        "tags": tags,
    }
    if settings.availability_zone:
        attributes["availability_zone"] = settings.availability_zone

    db = Resource(
        type="db_instance",
        name="db",
        attributes=attributes,
        outputs=("address", "port"),
        sensitive=("password",),
    )

    master_credentials = Resource(
        type="secret_store_object",
        name="master_credentials",
        attributes=_credentials(
            namespace=settings.secret_namespace,
            name=f"{prefix}-db-master",
            username=settings.master_username,
            password=master_password.ref("result"),
            db=db,
            dbname=dbname,
        ),
        outputs=("id",),
        sensitive=("data",),
    )
    app_credentials = Resource(
        type="secret_store_object",
        name="app_credentials",
        attributes=_credentials(
            namespace=settings.secret_namespace,
            name=f"{prefix}-db-app",
            username=settings.effective_app_username,
            password=app_password.ref("result"),
            db=db,
            dbname=dbname,
        ),
        outputs=("id",),
        sensitive=("data",),
    )

    return [
        network,
        security_group,
        ingress,
        subnet_group,
        parameter_group,
        master_password,
        app_password,
        db,
        master_credentials,
        app_credentials,
    ]


def declare_database_from_config(config: Dict[str, Any]) -> List[Resource]:
    """Atalho: extrai `database` e `secrets` da configuração resolvida."""
    return declare_database(
        database_settings_from_config(config),
        secret_settings_from_config(config),
    )
