"""
Tabela de políticas Update vs Replace por tipo de recurso e atributo.

A decisão entre atualizar no lugar e substituir é definida pelo provider
real e não aparece nas declarações; por isso ela é explícita aqui, por
atributo. Uma regra é uma `UpdatePolicy` fixa ou uma função
`(before, after) -> UpdatePolicy` para atributos cuja política depende
da natureza da mudança.

Regras gerais:
    - Atributos cosméticos (`tags`, `description` quando listado) são in-place
    - Recursos `data` são sempre relidos (in-place)
    - Atributo sem regra em recurso `managed` → REPLACE (conservador)
    - Overrides em `Lifecycle.update_policy` prevalecem sobre a tabela
    - Regra dinâmica com valor desconhecido (`UNKNOWN`) → REPLACE
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional, Union

from atlas_converge.core.graph.resource import (
    UNKNOWN,
    ResourceMode,
    UpdatePolicy,
    contains_unknown,
)

IN_PLACE = UpdatePolicy.IN_PLACE
REPLACE = UpdatePolicy.REPLACE

PolicyRule = Union[UpdatePolicy, Callable[[Any, Any], UpdatePolicy]]

COSMETIC_ATTRIBUTES = frozenset({"tags"})


def instance_class_family(before: Any, after: Any) -> UpdatePolicy:
    """`db.t3.micro` → `db.t3.large` é in-place; mudar de família (`t3` → `m5`) exige nova alocação."""

    def family(value: Any) -> Optional[str]:
        parts = str(value).split(".")
        return parts[1] if len(parts) >= 3 else None

    old, new = family(before), family(after)
    if old is None or new is None or old != new:
        return REPLACE
    return IN_PLACE


def storage_growth_only(before: Any, after: Any) -> UpdatePolicy:
    """Storage alocado só cresce no lugar; reduzir exige uma nova instância."""
    try:
        return IN_PLACE if int(after) >= int(before) else REPLACE
    except (TypeError, ValueError):
        return REPLACE


def major_version_change(before: Any, after: Any) -> UpdatePolicy:
    """Upgrade de versão menor é in-place; troca de major (`15.x` → `16.x`) também, mas downgrade substitui."""
    try:
        old = [int(p) for p in str(before).split(".")]
        new = [int(p) for p in str(after).split(".")]
    except ValueError:
        return REPLACE
    return IN_PLACE if new >= old else REPLACE


DEFAULT_POLICIES: Dict[str, Dict[str, PolicyRule]] = {
    "security_group": {
        "name": REPLACE,
        "vpc_id": REPLACE,
        "description": REPLACE,
    },
    # Regras de ingress só suportam create/delete no provider.
    "security_group_rule": {},
    "db_subnet_group": {
        "name": REPLACE,
        "subnet_ids": IN_PLACE,
        "description": IN_PLACE,
    },
    "db_parameter_group": {
        "name": REPLACE,
        "family": REPLACE,
        "parameters": IN_PLACE,
        "description": REPLACE,
    },
    "db_instance": {
        "identifier": REPLACE,
        "engine": REPLACE,
        "engine_version": major_version_change,
        "instance_class": instance_class_family,
        "allocated_storage": storage_growth_only,
        "max_allocated_storage": IN_PLACE,
        "username": REPLACE,
        "password": IN_PLACE,
        "db_name": REPLACE,
        "port": IN_PLACE,
        "parameter_group_name": IN_PLACE,
        "db_subnet_group_name": REPLACE,
        "vpc_security_group_ids": IN_PLACE,
        "availability_zone": REPLACE,
        "apply_immediately": IN_PLACE,
        "storage_encrypted": REPLACE,
    },
    "random_password": {
        "length": REPLACE,
        "special": REPLACE,
        "override_special": REPLACE,
        "keepers": REPLACE,
    },
    "secret_store_object": {
        "namespace": REPLACE,
        "name": REPLACE,
        "kind": REPLACE,
        "data": IN_PLACE,
    },
}


def decide(
    *,
    resource_type: str,
    attribute: str,
    before: Any,
    after: Any,
    mode: ResourceMode = ResourceMode.MANAGED,
    overrides: Optional[Mapping[str, UpdatePolicy]] = None,
    policies: Optional[Mapping[str, Mapping[str, PolicyRule]]] = None,
) -> UpdatePolicy:
    """Decide a política para a mudança de um atributo."""
    if overrides and attribute in overrides:
        return UpdatePolicy(overrides[attribute])

    if mode == ResourceMode.DATA:
        return IN_PLACE

    table = (policies if policies is not None else DEFAULT_POLICIES).get(resource_type, {})
    rule = table.get(attribute)
    if rule is None:
        return IN_PLACE if attribute in COSMETIC_ATTRIBUTES else REPLACE

    if isinstance(rule, UpdatePolicy):
        return rule

    if before is None or after is UNKNOWN or contains_unknown(after):
        return REPLACE
    return rule(before, after)
