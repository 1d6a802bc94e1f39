"""
Refresh do estado (detecção de drift).

Relê cada recurso do snapshot pelo seu provider e reconcilia o estado
registrado com o que existe de fato:
    - recurso que desapareceu → entrada removida (o próximo plano o recria)
    - outputs divergentes     → entrada regravada com os valores atuais

Recursos `data` (ex.: lookup da VPC) são relidos da mesma forma; uma
mudança de CIDR aparece no próximo plano como mudança nos dependentes.

Limites explícitos:
    - Não chama create/update/delete
    - Não altera `inputs` nem segredos gravados
"""

from __future__ import annotations

from dataclasses import replace
from typing import List, Optional

from atlas_converge.core.exceptions import AtlasException, ProviderError
from atlas_converge.core.graph.builder import ResourceGraph
from atlas_converge.core.providers.registry import ProviderRegistry
from atlas_converge.core.run_context import RunContext
from atlas_converge.core.state.store import StateStore


def _refresh_order(addresses: List[str], graph: Optional[ResourceGraph]) -> List[str]:
    if graph is None:
        return addresses
    declared = [a for a in graph.topological_order() if a in addresses]
    return declared + [a for a in addresses if a not in graph]


def refresh_state(
    store: StateStore,
    providers: ProviderRegistry,
    *,
    graph: Optional[ResourceGraph] = None,
    ctx: Optional[RunContext] = None,
) -> List[str]:
    """
    Reconcilia o snapshot com o estado real dos providers.

    Returns:
        Endereços cujo estado registrado foi alterado (drift detectado).

    Raises:
        EngineConfigurationError: Tipo sem provider registrado.
        ProviderError: Falha de leitura (exceções externas são encapsuladas).
        StateConflictError: Entrada alterada concorrentemente durante o refresh.
    """
    snapshot = store.snapshot()
    drifted: List[str] = []

    for address in _refresh_order(list(snapshot.entries), graph):
        entry = snapshot.entries[address]
        provider = providers.get(entry.type)
        try:
            current = provider.read(entry)
        except AtlasException:
            raise
        except Exception as exc:
            raise ProviderError(
                message=f"Provider read failed for '{address}'",
                details={"address": address, "operation": "read", "cause": f"{exc.__class__.__name__}: {exc}"},
            ) from exc

        if current is None:
            store.remove(address, expected_version=entry.version)
            drifted.append(address)
            if ctx is not None:
                ctx.log(address=address, level="warning", message="resource no longer exists; removed from state")
            continue

        current = dict(current)
        if current != entry.outputs:
            store.write(replace(entry, outputs=current), expected_version=entry.version)
            drifted.append(address)
            if ctx is not None:
                changed = sorted(k for k in set(current) | set(entry.outputs) if current.get(k) != entry.outputs.get(k))
                ctx.log(address=address, level="warning", message="drift detected", attributes=changed)

    return drifted
