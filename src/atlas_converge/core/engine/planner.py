"""
Planejador de convergência (diff declarações × State Snapshot).

Este módulo compara o grafo de recursos declarados com o último estado
aplicado e produz um `Plan`: uma sequência ordenada de ações Create,
Update, Replace e Delete, cada uma com o diff de atributos que a justifica.

Regras de decisão por recurso:
    - sem entrada no snapshot                  → Create
    - entrada marcada como tainted             → Replace
    - endereço em `replace=[...]` (rotação)    → Replace
    - atributo alterado com política REPLACE   → Replace
    - atributo alterado com política IN_PLACE  → Update
    - nenhuma mudança                          → no-op (sem ação)
    - entrada no snapshot sem declaração       → Delete

Resolução de referências:
    - atributos declarados do recurso referenciado usam o valor desejado
      (conhecido antes do apply)
    - saídas de recursos que serão criados ou substituídos resolvem para
      `UNKNOWN`, que sempre conta como mudança
    - saídas de data resources relidos (Update) também são `UNKNOWN`:
      o valor só é conhecido após a nova leitura
    - saídas de recursos estáveis vêm do snapshot; ausência é `PlanError`

Ordenação:
    - Create/Update/Replace de uma dependência precede as ações dos dependentes
    - Delete de um recurso aguarda o Delete dos seus dependentes registrados
      e o Update/Replace de quem deixou de referenciá-lo
    - Empates resolvidos pela ordem de declaração (Kahn com heap), seguidos
      das remoções na ordem do snapshot

Limites explícitos:
    - Não chama providers
    - Não muta o snapshot recebido
    - Nenhum plano parcial é retornado em caso de erro
"""

from __future__ import annotations

import heapq
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set

from atlas_converge.core.exceptions import PlanError
from atlas_converge.core.graph.builder import ResourceGraph, build_graph
from atlas_converge.core.graph.resource import (
    UNKNOWN,
    Ref,
    Resource,
    ResourceMode,
    ResourceState,
    UpdatePolicy,
    contains_unknown,
    resolve_value,
)
from atlas_converge.core.state.snapshot import StateEntry, StateSnapshot

from .policy import PolicyRule, decide
from .types import Action, ActionKind, AttributeChange, Plan

_PRODUCES_NEW_IDENTITY = (ActionKind.CREATE, ActionKind.REPLACE)


def _lookup_factory(
    graph: ResourceGraph,
    snapshot: StateSnapshot,
    planned_inputs: Dict[str, Dict[str, Any]],
    pending: Dict[str, ActionKind],
    requested_by: str,
) -> Callable[[Ref], Any]:
    def lookup(ref: Ref) -> Any:
        target = graph.get(ref.address)
        if ref.attribute in target.attributes:
            return planned_inputs[ref.address][ref.attribute]

        entry = snapshot.get(ref.address)
        if entry is None or pending.get(ref.address) in _PRODUCES_NEW_IDENTITY:
            return UNKNOWN
        if target.mode == ResourceMode.DATA and pending.get(ref.address) == ActionKind.UPDATE:
            return UNKNOWN
        if entry.has_attribute(ref.attribute):
            return entry.attribute(ref.attribute)

        raise PlanError(
            message=f"Unresolved reference '{ref}' while planning '{requested_by}'",
            details={"address": requested_by, "target": ref.address, "attribute": ref.attribute},
            hint="O estado do recurso referenciado não contém o atributo. Execute refresh ou taint.",
        )

    return lookup


def _diff_attributes(
    graph: ResourceGraph,
    resource: Resource,
    before: Mapping[str, Any],
    desired: Mapping[str, Any],
    policies: Optional[Mapping[str, Mapping[str, PolicyRule]]],
) -> List[AttributeChange]:
    names = list(desired) + [n for n in before if n not in desired]
    changes: List[AttributeChange] = []
    for name in names:
        old = before.get(name)
        new = desired.get(name)
        if name in before and name in desired and old == new and not contains_unknown(new):
            continue

        policy = decide(
            resource_type=resource.type,
            attribute=name,
            before=old,
            after=new,
            mode=resource.mode,
            overrides=resource.lifecycle.update_policy,
            policies=policies,
        )
        sensitive = resource.is_sensitive(name) or graph.value_is_sensitive(resource.attributes.get(name))
        changes.append(
            AttributeChange(
                name=name,
                before=old,
                after=new,
                sensitive=sensitive,
                requires_replacement=policy == UpdatePolicy.REPLACE,
            )
        )
    return changes


def _secret_spec_changes(resource: Resource, entry: StateEntry) -> List[AttributeChange]:
    desired = {k: s.to_dict() for k, s in resource.secrets.items()}
    changes = []
    for name in sorted(set(desired) | set(entry.secret_specs)):
        if desired.get(name) != entry.secret_specs.get(name):
            changes.append(
                AttributeChange(
                    name=f"secrets.{name}",
                    before=entry.secret_specs.get(name),
                    after=desired.get(name),
                    requires_replacement=True,
                )
            )
    return changes


def _all_values(resource: Resource, desired: Mapping[str, Any], graph: ResourceGraph) -> List[AttributeChange]:
    return [
        AttributeChange(
            name=name,
            before=None,
            after=value,
            sensitive=resource.is_sensitive(name) or graph.value_is_sensitive(resource.attributes.get(name)),
        )
        for name, value in desired.items()
    ]


def _order_actions(
    actions: Dict[str, Action],
    deps: Dict[str, List[str]],
    priority: Dict[str, int],
) -> List[Action]:
    remaining = {a: len(d) for a, d in deps.items()}
    dependents: Dict[str, List[str]] = {a: [] for a in actions}
    for address, dlist in deps.items():
        for dep in dlist:
            dependents[dep].append(address)

    ready = [(priority[a], a) for a, c in remaining.items() if c == 0]
    heapq.heapify(ready)
    ordered: List[Action] = []
    while ready:
        _, address = heapq.heappop(ready)
        ordered.append(actions[address])
        for child in dependents[address]:
            remaining[child] -= 1
            if remaining[child] == 0:
                heapq.heappush(ready, (priority[child], child))

    if len(ordered) != len(actions):
        stuck = sorted(a for a, c in remaining.items() if c > 0)
        raise PlanError(
            message="Cycle detected between planned actions",
            details={"addresses": stuck},
            hint="O estado registrado contém dependências circulares entre remoções.",
        )
    return ordered


def plan_changes(
    graph: ResourceGraph,
    snapshot: StateSnapshot,
    *,
    replace: Iterable[str] = (),
    policies: Optional[Mapping[str, Mapping[str, PolicyRule]]] = None,
) -> Plan:
    """
    Produz o plano ordenado que converge o snapshot para o grafo declarado.

    Args:
        graph: Grafo validado de recursos declarados.
        snapshot: Cópia do último estado aplicado (não é mutada).
        replace: Endereços cuja substituição é solicitada explicitamente
            (ex.: rotação de uma senha gerada).
        policies: Tabela de políticas alternativa à `DEFAULT_POLICIES`.

    Returns:
        Plan: ações em ordem topológica determinística; vazio quando o
        estado já converge.

    Raises:
        PlanError: Referência não resolvível, endereço de `replace` não
            declarado ou ciclo entre ações.
    """
    replace_set: Set[str] = set(replace)
    undeclared = sorted(a for a in replace_set if a not in graph)
    if undeclared:
        raise PlanError(
            message="Replacement requested for undeclared resources",
            details={"addresses": undeclared},
        )

    planned_inputs: Dict[str, Dict[str, Any]] = {}
    pending: Dict[str, ActionKind] = {}
    actions: Dict[str, Action] = {}
    deps: Dict[str, List[str]] = {}
    priority: Dict[str, int] = {}

    for address in graph.topological_order():
        resource = graph.get(address)
        entry = snapshot.get(address)
        lookup = _lookup_factory(graph, snapshot, planned_inputs, pending, address)
        desired = {name: resolve_value(value, lookup) for name, value in resource.attributes.items()}
        planned_inputs[address] = desired

        kind: Optional[ActionKind] = None
        diff: List[AttributeChange] = []
        reason = ""

        if entry is None:
            kind, reason = ActionKind.CREATE, "not present in state"
            diff = _all_values(resource, desired, graph)
        else:
            diff = _diff_attributes(graph, resource, entry.inputs, desired, policies)
            diff += _secret_spec_changes(resource, entry)
            forcing = [c.name for c in diff if c.requires_replacement]

            if entry.status == ResourceState.TAINTED:
                kind, reason = ActionKind.REPLACE, "tainted"
            elif address in replace_set:
                kind, reason = ActionKind.REPLACE, "replacement requested"
            elif forcing:
                kind, reason = ActionKind.REPLACE, "requires replacement: " + ", ".join(forcing)
            elif diff:
                kind, reason = ActionKind.UPDATE, "update in place: " + ", ".join(c.name for c in diff)

        if kind is None:
            continue

        pending[address] = kind
        actions[address] = Action(
            address=address,
            kind=kind,
            resource_type=resource.type,
            diff=diff,
            prior_version=entry.version if entry is not None else 0,
            reason=reason,
            create_before_destroy=resource.lifecycle.create_before_destroy,
        )
        deps[address] = [d for d in graph.dependencies[address] if d in pending]
        priority[address] = graph.declaration_index(address)

    # Orphans: in state, no longer declared
    orphans = [a for a in snapshot.entries if a not in graph]
    base = len(graph)
    for offset, address in enumerate(orphans):
        entry = snapshot.entries[address]
        actions[address] = Action(
            address=address,
            kind=ActionKind.DELETE,
            resource_type=entry.type,
            diff=[
                AttributeChange(name=n, before=v, after=None)
                for n, v in entry.inputs.items()
            ],
            prior_version=entry.version,
            reason="not declared",
        )
        priority[address] = base + offset

    for address in orphans:
        waits = [o for o in orphans if o != address and address in snapshot.entries[o].dependencies]
        waits += [
            a for a, kind in pending.items()
            if kind in (ActionKind.UPDATE, ActionKind.REPLACE)
            and address in snapshot.entries[a].dependencies
        ]
        deps[address] = waits

    ordered = _order_actions(actions, deps, priority)
    final = [
        Action(
            address=a.address,
            kind=a.kind,
            resource_type=a.resource_type,
            diff=a.diff,
            depends_on=list(deps[a.address]),
            prior_version=a.prior_version,
            reason=a.reason,
            create_before_destroy=a.create_before_destroy,
        )
        for a in ordered
    ]
    return Plan(actions=final, state_lineage=snapshot.lineage, state_serial=snapshot.serial)


def plan_destroy(snapshot: StateSnapshot) -> Plan:
    """Plano que remove todos os recursos do snapshot, dependentes primeiro."""
    return plan_changes(build_graph([]), snapshot)
