"""
Tipos canônicos do plano e do apply.

Componentes principais:
    - ActionKind      → Create, Update, Replace, Delete
    - AttributeChange → diff de um atributo que justifica a ação
    - Action          → ação ordenada sobre exatamente um recurso
    - Plan            → sequência ordenada de ações + identidade do estado base
    - ActionStatus    → estado final de uma ação no apply
    - ActionResult    → resultado imutável de uma ação
    - ApplyReport     → relatório agregado (sucesso, falha, skip, cancelamento)

Princípios fundamentais:
    - Tipos são estáveis e serializáveis
    - Valores sensíveis nunca aparecem em `to_dict()`
    - Nenhuma lógica de execução vive neste módulo
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from atlas_converge.core.config.hashing import canonical_hash
from atlas_converge.core.graph.resource import UNKNOWN, ResourceState

SENSITIVE_MASK = "(sensitive)"


class ActionKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    REPLACE = "replace"
    DELETE = "delete"


class ActionStatus(str, Enum):
    """
    Estados finais de uma ação no apply.

    - SUCCESS: provider confirmou e o estado foi gravado
    - FAILED: provider (ou o engine) falhou; estado não foi alterado pela ação
    - SKIPPED: não tentada porque um pré-requisito não teve sucesso
    - CANCELED: não agendada porque o apply foi cancelado (timeout/interrupção)
    """

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"
    CANCELED = "canceled"


def _render(value: Any) -> Any:
    if value is UNKNOWN:
        return repr(UNKNOWN)
    if isinstance(value, dict):
        return {k: _render(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_render(v) for v in value]
    return value


@dataclass(frozen=True)
class AttributeChange:
    name: str
    before: Any
    after: Any
    sensitive: bool = False
    requires_replacement: bool = False

    def to_dict(self) -> Dict[str, Any]:
        before = SENSITIVE_MASK if self.sensitive and self.before is not None else _render(self.before)
        after = SENSITIVE_MASK if self.sensitive and self.after is not None else _render(self.after)
        return {
            "name": self.name,
            "before": before,
            "after": after,
            "sensitive": self.sensitive,
            "requires_replacement": self.requires_replacement,
        }


@dataclass(frozen=True)
class Action:
    address: str
    kind: ActionKind
    resource_type: str
    diff: List[AttributeChange] = field(default_factory=list)
    depends_on: List[str] = field(default_factory=list)
    prior_version: int = 0
    reason: str = ""
    create_before_destroy: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "kind": self.kind.value,
            "resource_type": self.resource_type,
            "diff": [c.to_dict() for c in self.diff],
            "depends_on": list(self.depends_on),
            "prior_version": self.prior_version,
            "reason": self.reason,
            "create_before_destroy": self.create_before_destroy,
        }


@dataclass(frozen=True)
class Plan:
    actions: List[Action] = field(default_factory=list)
    state_lineage: Optional[str] = None
    state_serial: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.actions

    def get(self, address: str) -> Optional[Action]:
        for action in self.actions:
            if action.address == address:
                return action
        return None

    def addresses(self) -> List[str]:
        return [a.address for a in self.actions]

    def summary(self) -> Dict[str, int]:
        counts = {k.value: 0 for k in ActionKind}
        for action in self.actions:
            counts[action.kind.value] += 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state_lineage": self.state_lineage,
            "state_serial": self.state_serial,
            "actions": [a.to_dict() for a in self.actions],
        }

    def plan_hash(self) -> str:
        return canonical_hash(self.to_dict())


@dataclass(frozen=True)
class ActionResult:
    address: str
    kind: ActionKind
    status: ActionStatus
    summary: str
    resource_state: Optional[ResourceState] = None
    attempts: int = 0
    warnings: List[str] = field(default_factory=list)
    error: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "kind": self.kind.value,
            "status": self.status.value,
            "summary": self.summary,
            "resource_state": self.resource_state.value if self.resource_state else None,
            "attempts": self.attempts,
            "warnings": list(self.warnings),
            "error": dict(self.error) if self.error else None,
        }


@dataclass(frozen=True)
class ApplyReport:
    """Resultado agregado de um apply, indexado por endereço na ordem do plano."""

    results: Dict[str, ActionResult] = field(default_factory=dict)

    def _with_status(self, status: ActionStatus) -> List[str]:
        return [a for a, r in self.results.items() if r.status == status]

    @property
    def succeeded(self) -> List[str]:
        return self._with_status(ActionStatus.SUCCESS)

    @property
    def failed(self) -> List[str]:
        return self._with_status(ActionStatus.FAILED)

    @property
    def skipped(self) -> List[str]:
        return self._with_status(ActionStatus.SKIPPED)

    @property
    def canceled(self) -> List[str]:
        return self._with_status(ActionStatus.CANCELED)

    @property
    def ok(self) -> bool:
        return all(r.status == ActionStatus.SUCCESS for r in self.results.values())

    def errors(self) -> Dict[str, Dict[str, Any]]:
        return {a: dict(r.error) for a, r in self.results.items() if r.error}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "canceled": self.canceled,
            "results": {a: r.to_dict() for a, r in self.results.items()},
        }
