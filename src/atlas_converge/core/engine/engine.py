# src/atlas_converge/core/engine/engine.py
"""
Engine de convergência do Atlas Converge.

O `ConvergeEngine` amarra os componentes de uma run:
    declarações → build_graph → plan_changes (State Store) → Executor

Responsabilidades:
    - construir e validar o grafo uma única vez por run
    - gerar planos a partir de uma cópia do snapshot atual
    - criar o Manifest do apply (hashes de config e plano, lineage/serial)
    - aplicar com as políticas de `EngineSettings` (paralelismo, retry,
      timeout, fail-fast)
    - expor refresh, taint/untaint e plano de destruição

Limites explícitos:
    - Não conhece providers concretos (recebe um `ProviderRegistry`)
    - Não persiste o Manifest sem um caminho explícito
"""

from __future__ import annotations

import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Union

from atlas_converge import __version__
from atlas_converge.core.config.hashing import compute_config_hash
from atlas_converge.core.config.settings import engine_settings_from_config
from atlas_converge.core.graph.builder import build_graph
from atlas_converge.core.graph.resource import Resource
from atlas_converge.core.providers.registry import ProviderRegistry
from atlas_converge.core.run_context import RunContext
from atlas_converge.core.state.snapshot import StateEntry
from atlas_converge.core.state.store import StateStore
from atlas_converge.core.traceability.manifest import create_manifest, save_manifest

from .executor import Executor
from .planner import plan_changes, plan_destroy
from .policy import PolicyRule
from .refresh import refresh_state
from .types import ApplyReport, Plan


class ConvergeEngine:
    """Engine canônico do Atlas Converge (graph + planner + executor)."""

    def __init__(
        self,
        *,
        resources: Sequence[Resource],
        providers: ProviderRegistry,
        store: StateStore,
        ctx: RunContext,
        policies: Optional[Mapping[str, Mapping[str, PolicyRule]]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.graph = build_graph(resources)
        self.providers = providers
        self.store = store
        self.ctx = ctx
        self.policies = policies
        self.settings = engine_settings_from_config(ctx.config)
        self._sleep = sleep
        self._cancel = threading.Event()

    def plan(self, *, replace: Iterable[str] = ()) -> Plan:
        plan = plan_changes(self.graph, self.store.snapshot(), replace=replace, policies=self.policies)
        self.ctx.log(address=None, level="info", message="plan created", **plan.summary())
        return plan

    def destroy_plan(self) -> Plan:
        plan = plan_destroy(self.store.snapshot())
        self.ctx.log(address=None, level="info", message="destroy plan created", **plan.summary())
        return plan

    def apply(
        self,
        plan: Optional[Plan] = None,
        *,
        manifest_path: Optional[Union[str, Path]] = None,
    ) -> ApplyReport:
        """
        Aplica `plan` (ou um plano novo) e retorna o relatório.

        Um plano vazio não chama providers nem altera o estado.
        """
        if plan is None:
            plan = self.plan()

        self.ctx.manifest = create_manifest(
            run_id=self.ctx.run_id,
            started_at=datetime.now(timezone.utc),
            engine_version=__version__,
            config_hash=compute_config_hash(self.ctx.config),
            plan_hash=plan.plan_hash(),
            state_lineage=plan.state_lineage,
            state_serial=plan.state_serial,
        )

        executor = Executor(
            providers=self.providers,
            store=self.store,
            ctx=self.ctx,
            settings=self.settings,
            sleep=self._sleep,
            cancel_event=self._cancel,
        )
        report = executor.apply(plan, self.graph)

        if manifest_path is not None:
            save_manifest(self.ctx.manifest, Path(manifest_path))
        return report

    def cancel(self) -> None:
        """
        Para o agendamento de novas ações do apply em curso e dos seguintes.

        Vale também antes do `apply`: todas as ações terminam como CANCELED.
        """
        self._cancel.set()

    def refresh(self) -> List[str]:
        return refresh_state(self.store, self.providers, graph=self.graph, ctx=self.ctx)

    def taint(self, address: str) -> StateEntry:
        entry = self.store.taint(address)
        self.ctx.log(address=address, level="info", message="marked for replacement")
        return entry

    def untaint(self, address: str) -> StateEntry:
        return self.store.untaint(address)
