"""
Executor do apply.

Aplica um `Plan` chamando os providers registrados por tipo de recurso e
gravando cada resultado confirmado no State Store, imediatamente.

Modelo de execução:
    - Ramos independentes rodam em paralelo num `ThreadPoolExecutor`
      limitado por `EngineSettings.parallelism` (padrão 10)
    - Uma ação só é agendada após o sucesso de todas as suas dependências
    - Falha de uma ação marca apenas sua subárvore dependente como SKIPPED;
      ramos independentes continuam (sem rollback silencioso)
    - `cancel()` ou timeout param o agendamento; ações em andamento
      terminam e suas escritas no estado são preservadas; as não
      agendadas são reportadas como CANCELED
    - `fail_fast=True` cancela o restante após a primeira falha

Por ação:
    - referências são resolvidas novamente contra o snapshot atual
    - a versão da entrada é conferida antes de qualquer chamada remota
    - segredos são gerados apenas em Create/Replace; Update reaproveita
      os valores gravados
    - `ProviderError(transient=True)` é repetido com backoff exponencial
    - exceções que não são do Atlas viram `ProviderError` não transitório

Registro (RunContext + Manifest) acontece sempre na thread do loop de
agendamento, na ordem em que as ações terminam.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from atlas_converge.core.config.settings import EngineSettings
from atlas_converge.core.errors import exception_to_error
from atlas_converge.core.exceptions import (
    AtlasException,
    EngineConfigurationError,
    PlanError,
    ProviderError,
    StateConflictError,
)
from atlas_converge.core.graph.builder import ResourceGraph
from atlas_converge.core.graph.resource import (
    Ref,
    Resource,
    ResourceMode,
    ResourceState,
    SecretSpec,
    resolve_value,
)
from atlas_converge.core.providers.base import ResourceProvider
from atlas_converge.core.providers.registry import ProviderRegistry
from atlas_converge.core.run_context import RunContext
from atlas_converge.core.state.snapshot import StateEntry, StateSnapshot
from atlas_converge.core.state.store import StateStore
from atlas_converge.core.traceability import manifest as trace

from .secret_generator import generate_secret
from .types import Action, ActionKind, ActionResult, ActionStatus, ApplyReport, Plan

_RESULT_STATE = {
    ActionKind.CREATE: ResourceState.CREATED,
    ActionKind.UPDATE: ResourceState.UPDATED,
    ActionKind.REPLACE: ResourceState.CREATED,
    ActionKind.DELETE: ResourceState.DELETED,
}

_SUMMARY = {
    ActionKind.CREATE: "created",
    ActionKind.UPDATE: "updated in place",
    ActionKind.REPLACE: "replaced",
    ActionKind.DELETE: "deleted",
}


@dataclass
class _Tally:
    attempts: int = 0


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Executor:
    """Aplica planos com paralelismo limitado, retry e cancelamento."""

    poll_interval: float = 0.05

    def __init__(
        self,
        *,
        providers: ProviderRegistry,
        store: StateStore,
        ctx: RunContext,
        settings: Optional[EngineSettings] = None,
        sleep: Callable[[float], None] = time.sleep,
        secret_generator: Callable[[SecretSpec], str] = generate_secret,
        clock: Callable[[], float] = time.monotonic,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.providers = providers
        self.store = store
        self.ctx = ctx
        self.settings = settings or EngineSettings()
        self._sleep = sleep
        self._generate = secret_generator
        self._clock = clock
        self._cancel = cancel_event if cancel_event is not None else threading.Event()

    def cancel(self) -> None:
        """Para o agendamento de novas ações; ações em andamento terminam."""
        self._cancel.set()

    @property
    def canceled(self) -> bool:
        return self._cancel.is_set()

    # ------------------------------------------------------------------
    # Pré-validação
    # ------------------------------------------------------------------
    def _validate(self, plan: Plan, graph: ResourceGraph) -> None:
        if plan.state_lineage is not None and plan.state_lineage != self.store.lineage:
            raise StateConflictError(
                message="Plan was created against a different state lineage",
                details={"plan_lineage": plan.state_lineage, "state_lineage": self.store.lineage},
                hint="Gere um novo plano a partir do estado atual.",
                decision_required=True,
            )

        missing = self.providers.missing(a.resource_type for a in plan.actions)
        if missing:
            raise EngineConfigurationError(
                message="No provider registered for planned resource types",
                details={"resource_types": missing},
                hint="Registre os providers no ProviderRegistry antes do apply.",
            )

        seen = set()
        for action in plan.actions:
            unknown = [d for d in action.depends_on if d not in seen]
            if unknown:
                raise EngineConfigurationError(
                    message=f"Action '{action.address}' depends on actions not scheduled before it",
                    details={"address": action.address, "depends_on": unknown},
                )
            if action.kind != ActionKind.DELETE and action.address not in graph:
                raise EngineConfigurationError(
                    message=f"Planned resource '{action.address}' is not in the graph",
                    details={"address": action.address},
                    hint="Use o mesmo grafo usado para gerar o plano.",
                )
            seen.add(action.address)

    # ------------------------------------------------------------------
    # Loop de agendamento
    # ------------------------------------------------------------------
    def apply(self, plan: Plan, graph: ResourceGraph) -> ApplyReport:
        """
        Aplica o plano e retorna o relatório por endereço, na ordem do plano.

        Raises:
            StateConflictError: Plano gerado contra outra lineage de estado.
            EngineConfigurationError: Provider ausente ou plano malformado.
        """
        self._validate(plan, graph)

        parallelism = self.settings.parallelism
        timeout = self.settings.timeout_seconds
        deadline = self._clock() + timeout if timeout is not None else None
        order = {a.address: i for i, a in enumerate(plan.actions)}

        results: Dict[str, ActionResult] = {}
        pending: List[Action] = list(plan.actions)
        running: Dict[Future, Action] = {}
        stop_reason: Optional[str] = None

        self.ctx.log(address=None, level="info", message="apply started", actions=len(plan.actions))

        with ThreadPoolExecutor(max_workers=parallelism, thread_name_prefix="atlas-converge") as pool:
            while pending or running:
                if stop_reason is None:
                    if self._cancel.is_set():
                        stop_reason = "canceled"
                    elif deadline is not None and self._clock() >= deadline:
                        stop_reason = "timeout"

                if stop_reason is not None:
                    for action in pending:
                        self._record(action, self._not_attempted(action, ActionStatus.CANCELED, f"canceled ({stop_reason})"), results)
                    pending = []
                else:
                    waiting: List[Action] = []
                    for action in pending:
                        deps = [results.get(d) for d in action.depends_on]
                        blocked = next((r for r in deps if r is not None and r.status != ActionStatus.SUCCESS), None)
                        if blocked is not None:
                            summary = f"skipped due to {blocked.status.value} dependency: {blocked.address}"
                            self._record(action, self._not_attempted(action, ActionStatus.SKIPPED, summary), results)
                        elif all(r is not None for r in deps) and len(running) < parallelism:
                            self._started(action)
                            running[pool.submit(self._run_action, action, graph)] = action
                        else:
                            waiting.append(action)
                    pending = waiting

                if not running:
                    continue

                wait_for = self.poll_interval
                if deadline is not None and stop_reason is None:
                    wait_for = max(0.0, min(wait_for, deadline - self._clock()))
                done, _ = wait(list(running), timeout=wait_for, return_when=FIRST_COMPLETED)

                for future in sorted(done, key=lambda f: order[running[f].address]):
                    action = running.pop(future)
                    result = future.result()
                    self._record(action, result, results)
                    if result.status == ActionStatus.FAILED and self.settings.fail_fast and stop_reason is None:
                        stop_reason = "fail_fast"

        report = ApplyReport(results={a.address: results[a.address] for a in plan.actions})
        self.ctx.log(
            address=None,
            level="info" if report.ok else "error",
            message="apply finished",
            succeeded=len(report.succeeded),
            failed=len(report.failed),
            skipped=len(report.skipped),
            canceled=len(report.canceled),
        )
        if self.ctx.manifest is not None:
            trace.add_event(
                self.ctx.manifest,
                event_type="apply_finished",
                ts=_now(),
                payload={"ok": report.ok, "stop_reason": stop_reason},
            )
        return report

    # ------------------------------------------------------------------
    # Registro (thread do loop)
    # ------------------------------------------------------------------
    def _started(self, action: Action) -> None:
        self.ctx.log(address=action.address, level="info", message="action started", kind=action.kind.value)
        if self.ctx.manifest is not None:
            trace.action_started(self.ctx.manifest, address=action.address, kind=action.kind.value, ts=_now())

    def _record(self, action: Action, result: ActionResult, results: Dict[str, ActionResult]) -> None:
        results[action.address] = result
        for warning in result.warnings:
            self.ctx.add_warning(address=action.address, message=warning)

        manifest = self.ctx.manifest
        ts = _now()
        if result.status == ActionStatus.SUCCESS:
            self.ctx.log(address=action.address, level="info", message=result.summary, attempts=result.attempts)
            if manifest is not None:
                trace.action_finished(manifest, address=action.address, ts=ts, result=result.to_dict())
        elif result.status == ActionStatus.FAILED:
            self.ctx.log(
                address=action.address,
                level="error",
                message=result.summary,
                attempts=result.attempts,
                error_type=(result.error or {}).get("type"),
            )
            if manifest is not None:
                trace.action_failed(
                    manifest,
                    address=action.address,
                    ts=ts,
                    error=result.error or {},
                    attempts=result.attempts,
                )
        else:
            self.ctx.log(address=action.address, level="warning", message=result.summary)
            if manifest is not None:
                trace.action_skipped(
                    manifest,
                    address=action.address,
                    kind=action.kind.value,
                    ts=ts,
                    reason=result.summary,
                    status=result.status.value,
                )

    @staticmethod
    def _not_attempted(action: Action, status: ActionStatus, summary: str) -> ActionResult:
        return ActionResult(address=action.address, kind=action.kind, status=status, summary=summary)

    # ------------------------------------------------------------------
    # Execução de uma ação (thread do pool)
    # ------------------------------------------------------------------
    def _run_action(self, action: Action, graph: ResourceGraph) -> ActionResult:
        tally = _Tally()
        try:
            provider = self.providers.get(action.resource_type)
            if action.kind == ActionKind.CREATE:
                self._create(action, graph.get(action.address), graph, provider, tally)
            elif action.kind == ActionKind.UPDATE:
                self._update(action, graph.get(action.address), graph, provider, tally)
            elif action.kind == ActionKind.REPLACE:
                self._replace(action, graph.get(action.address), graph, provider, tally)
            else:
                self._delete(action, provider, tally)
        except Exception as exc:
            error = exception_to_error(exc, address=action.address).to_dict()
            return ActionResult(
                address=action.address,
                kind=action.kind,
                status=ActionStatus.FAILED,
                summary=error["message"],
                attempts=tally.attempts,
                error=error,
            )

        return ActionResult(
            address=action.address,
            kind=action.kind,
            status=ActionStatus.SUCCESS,
            summary=_SUMMARY[action.kind],
            resource_state=_RESULT_STATE[action.kind],
            attempts=tally.attempts,
        )

    def _call(self, action: Action, operation: str, fn: Callable[..., Any], *args: Any, tally: _Tally) -> Any:
        retry = self.settings.retry
        attempt = 0
        while True:
            attempt += 1
            tally.attempts += 1
            try:
                return fn(*args)
            except ProviderError as exc:
                if not exc.transient or attempt >= retry.max_attempts:
                    raise
                delay = retry.delay_for(attempt)
                self.ctx.log(
                    address=action.address,
                    level="warning",
                    message=f"transient provider error on {operation}, retrying",
                    attempt=attempt,
                    delay_seconds=delay,
                    cause=exc.message,
                )
                self._sleep(delay)
            except AtlasException:
                raise
            except Exception as exc:
                raise ProviderError(
                    message=f"Provider {operation} failed for '{action.address}'",
                    details={
                        "address": action.address,
                        "operation": operation,
                        "cause": f"{exc.__class__.__name__}: {exc}",
                        "attempts": attempt,
                    },
                    hint="Verifique o provider e a infraestrutura remota. Nenhum rollback é aplicado automaticamente.",
                ) from exc

    def _resolve(self, resource: Resource, graph: ResourceGraph) -> Dict[str, Any]:
        """Atributos declarados usam o valor aplicado; os demais vêm de segredos e outputs."""
        snapshot: StateSnapshot = self.store.snapshot()

        def lookup(ref: Ref) -> Any:
            entry = snapshot.get(ref.address)
            if entry is not None and ref.attribute in graph.get(ref.address).attributes:
                if ref.attribute in entry.inputs:
                    return entry.inputs[ref.attribute]
            if entry is None or not entry.has_attribute(ref.attribute):
                raise PlanError(
                    message=f"Reference '{ref}' is not available in state at apply time",
                    details={"address": resource.address, "target": ref.address, "attribute": ref.attribute},
                    hint="O recurso referenciado não foi aplicado. Gere um novo plano.",
                )
            return entry.attribute(ref.attribute)

        return {name: resolve_value(value, lookup) for name, value in resource.attributes.items()}

    @staticmethod
    def _conflict(action: Action, actual: int) -> StateConflictError:
        return StateConflictError(
            message=f"State entry '{action.address}' changed since the plan was created",
            details={
                "address": action.address,
                "expected_version": action.prior_version,
                "actual_version": actual,
            },
            hint="Outro processo alterou o estado desde o plano. Gere um novo plano.",
            decision_required=True,
        )

    def _current(self, action: Action) -> StateEntry:
        """Entrada atual, conferida contra a versão vista pelo planner."""
        entry = self.store.get(action.address)
        if entry is None:
            raise self._conflict(action, 0)
        if entry.version != action.prior_version:
            raise self._conflict(action, entry.version)
        return entry

    def _secrets(self, resource: Resource) -> Tuple[Dict[str, str], Dict[str, Dict[str, Any]]]:
        values = {name: self._generate(spec) for name, spec in resource.secrets.items()}
        specs = {name: spec.to_dict() for name, spec in resource.secrets.items()}
        return values, specs

    def _create_entry(
        self,
        resource: Resource,
        graph: ResourceGraph,
        provider: ResourceProvider,
        action: Action,
        tally: _Tally,
        *,
        expected_version: int,
    ) -> StateEntry:
        inputs = self._resolve(resource, graph)
        secrets, specs = self._secrets(resource)
        outputs = self._call(action, "create", provider.create, dict(inputs, **secrets), tally=tally)
        entry = StateEntry(
            address=resource.address,
            type=resource.type,
            mode=resource.mode,
            inputs=inputs,
            outputs=dict(outputs or {}),
            secrets=secrets,
            secret_specs=specs,
            dependencies=list(graph.dependencies[resource.address]),
            status=ResourceState.CREATED,
        )
        return self.store.write(entry, expected_version=expected_version)

    def _create(self, action: Action, resource: Resource, graph: ResourceGraph, provider: ResourceProvider, tally: _Tally) -> None:
        existing = self.store.get(action.address)
        if existing is not None:
            raise self._conflict(action, existing.version)
        self._create_entry(resource, graph, provider, action, tally, expected_version=0)

    def _update(self, action: Action, resource: Resource, graph: ResourceGraph, provider: ResourceProvider, tally: _Tally) -> None:
        prior = self._current(action)
        inputs = self._resolve(resource, graph)
        outputs = self._call(action, "update", provider.update, prior, dict(inputs, **prior.secrets), tally=tally)
        entry = replace(
            prior,
            inputs=inputs,
            outputs=dict(outputs or {}),
            dependencies=list(graph.dependencies[resource.address]),
            status=ResourceState.UPDATED,
        )
        self.store.write(entry, expected_version=prior.version)

    def _replace(self, action: Action, resource: Resource, graph: ResourceGraph, provider: ResourceProvider, tally: _Tally) -> None:
        prior = self._current(action)
        if action.create_before_destroy:
            self._create_entry(resource, graph, provider, action, tally, expected_version=prior.version)
            if prior.mode != ResourceMode.DATA:
                self._call(action, "delete", provider.delete, prior, tally=tally)
            return

        if prior.mode != ResourceMode.DATA:
            self._call(action, "delete", provider.delete, prior, tally=tally)
        self.store.remove(action.address, expected_version=prior.version)
        self._create_entry(resource, graph, provider, action, tally, expected_version=0)

    def _delete(self, action: Action, provider: ResourceProvider, tally: _Tally) -> None:
        prior = self._current(action)
        if prior.mode != ResourceMode.DATA:
            self._call(action, "delete", provider.delete, prior, tally=tally)
        self.store.remove(action.address, expected_version=prior.version)
