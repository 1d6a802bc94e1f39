"""
Registro estrutural de declarações de recursos.

O `ResourceRegistry` valida a identidade de cada recurso antes da
construção do grafo e preserva a ordem de declaração, que é o critério de
desempate determinístico do planner.

Invariantes:
    - Cada recurso registrado possui endereço único
    - A lista de recursos reflete exatamente a ordem de registro

Limites explícitos:
    - Não resolve referências
    - Não detecta ciclos
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from atlas_converge.core.exceptions import DuplicateResourceError

from .resource import Resource


@dataclass
class ResourceRegistry:
    _resources: Dict[str, Resource] = field(default_factory=dict, init=False, repr=False)
    _order: List[str] = field(default_factory=list, init=False, repr=False)

    def add(self, resource: Resource) -> None:
        for label, value in (("type", resource.type), ("name", resource.name)):
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"resource.{label} must be a non-empty string")

        address = resource.address
        if address in self._resources:
            raise DuplicateResourceError(
                message=f"Duplicate resource address: {address}",
                details={"address": address},
                hint="Renomeie uma das declarações; o endereço tipo.nome deve ser único.",
            )

        self._resources[address] = resource
        self._order.append(address)

    def get(self, address: str) -> Resource:
        return self._resources[address]

    def __contains__(self, address: object) -> bool:
        return address in self._resources

    def __len__(self) -> int:
        return len(self._order)

    def list(self) -> List[Resource]:
        return [self._resources[a] for a in self._order]
