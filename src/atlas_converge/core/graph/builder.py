"""
Construtor do grafo de recursos (DAG).

Este módulo transforma um conjunto de declarações em um `ResourceGraph`
validado estruturalmente, pronto para o planner.

O builder opera exclusivamente em nível estrutural, analisando:
    - unicidade de endereços
    - referências para recursos e atributos de saída declarados
    - formação de ciclos

Decisões arquiteturais:
    - Arestas são derivadas apenas de referências (`Ref`/`Computed`)
    - Detecção de ciclo por DFS com pilha de recursão explícita
    - Empates de ordenação são resolvidos pela ordem de declaração
    - Erros estruturais são falhas fatais; nenhum grafo parcial é retornado

Invariantes:
    - Todo recurso referenciado aparece antes de quem o referencia em
      `topological_order()`
    - A mesma lista de declarações produz sempre o mesmo grafo e a mesma ordem

Limites explícitos:
    - Não consulta o State Snapshot
    - Não chama providers
    - Não produz efeitos colaterais
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List

from atlas_converge.core.exceptions import CyclicDependencyError, UnresolvedReferenceError

from .registry import ResourceRegistry
from .resource import Resource, iter_refs


@dataclass(frozen=True)
class ResourceGraph:
    """
    Grafo imutável de recursos declarados.

    Campos:
        - resources: endereço → Resource, em ordem de declaração
        - dependencies: endereço → endereços dos quais depende
        - dependents: endereço → endereços que dependem dele
    """

    resources: Dict[str, Resource]
    dependencies: Dict[str, List[str]]
    dependents: Dict[str, List[str]]

    def __contains__(self, address: object) -> bool:
        return address in self.resources

    def __len__(self) -> int:
        return len(self.resources)

    def get(self, address: str) -> Resource:
        return self.resources[address]

    def addresses(self) -> List[str]:
        return list(self.resources)

    def declaration_index(self, address: str) -> int:
        return self._index[address]

    @property
    def _index(self) -> Dict[str, int]:
        return {a: i for i, a in enumerate(self.resources)}

    def topological_order(self) -> List[str]:
        """Kahn determinístico: entre recursos prontos, o de menor índice de declaração."""
        index = self._index
        remaining = {a: len(d) for a, d in self.dependencies.items()}
        ready = [(index[a], a) for a, c in remaining.items() if c == 0]
        heapq.heapify(ready)

        order: List[str] = []
        while ready:
            _, address = heapq.heappop(ready)
            order.append(address)
            for child in self.dependents[address]:
                remaining[child] -= 1
                if remaining[child] == 0:
                    heapq.heappush(ready, (index[child], child))
        return order

    def is_sensitive(self, address: str, attribute: str) -> bool:
        resource = self.resources.get(address)
        return resource is not None and resource.is_sensitive(attribute)

    def value_is_sensitive(self, value: Any) -> bool:
        """Um valor declarado é sensível se referencia algum atributo sensível."""
        return any(self.is_sensitive(ref.address, ref.attribute) for ref in iter_refs(value))


def _find_cycle(order: List[str], dependencies: Dict[str, List[str]]) -> List[str]:
    """DFS com pilha de recursão; retorna o primeiro ciclo encontrado ou []."""
    visited: set = set()
    on_stack: set = set()
    stack: List[str] = []

    def visit(node: str) -> List[str]:
        visited.add(node)
        on_stack.add(node)
        stack.append(node)
        for dep in dependencies[node]:
            if dep in on_stack:
                return stack[stack.index(dep):] + [dep]
            if dep not in visited:
                cycle = visit(dep)
                if cycle:
                    return cycle
        on_stack.discard(node)
        stack.pop()
        return []

    for address in order:
        if address not in visited:
            cycle = visit(address)
            if cycle:
                return cycle
    return []


def build_graph(resources: Iterable[Resource]) -> ResourceGraph:
    """
    Valida declarações e constrói o grafo de dependências.

    Args:
        resources: Declarações em ordem de declaração.

    Returns:
        ResourceGraph: grafo acíclico validado.

    Raises:
        DuplicateResourceError: Se dois recursos tiverem o mesmo endereço.
        UnresolvedReferenceError: Se uma referência apontar para recurso
            inexistente ou atributo não declarado.
        CyclicDependencyError: Se houver ciclo; `details["cycle"]` lista os membros.
    """
    registry = ResourceRegistry()
    for resource in resources:
        registry.add(resource)

    declared = registry.list()
    index = {r.address: i for i, r in enumerate(declared)}

    # Validate references exist
    dependencies: Dict[str, List[str]] = {}
    for resource in declared:
        deps: List[str] = []
        for ref in resource.references():
            if ref.address not in registry:
                raise UnresolvedReferenceError(
                    message=f"'{resource.address}' references undeclared resource '{ref.address}'",
                    details={"address": resource.address, "target": ref.address, "attribute": ref.attribute},
                )
            target = registry.get(ref.address)
            if ref.attribute not in target.referencable_attributes():
                raise UnresolvedReferenceError(
                    message=f"'{resource.address}' references undeclared attribute '{ref}'",
                    details={"address": resource.address, "target": ref.address, "attribute": ref.attribute},
                )
            if ref.address not in deps:
                deps.append(ref.address)
        dependencies[resource.address] = sorted(deps, key=index.__getitem__)

    order = [r.address for r in declared]
    cycle = _find_cycle(order, dependencies)
    if cycle:
        raise CyclicDependencyError(
            message="Cycle detected in resource dependency graph: " + " -> ".join(cycle),
            details={"cycle": cycle},
            hint="Remova uma das referências do ciclo.",
        )

    dependents: Dict[str, List[str]] = {a: [] for a in order}
    for address in order:
        for dep in dependencies[address]:
            dependents[dep].append(address)

    return ResourceGraph(
        resources={r.address: r for r in declared},
        dependencies=dependencies,
        dependents=dependents,
    )
