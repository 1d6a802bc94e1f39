"""
State Snapshot — último estado aplicado de cada recurso.

O snapshot mapeia endereço → `StateEntry`, incluindo valores secretos
gerados. Ele é identificado por uma `lineage` (UUID estável ao longo de
toda a vida do estado) e um `serial` incrementado a cada escrita.

Cada entrada carrega uma `version` própria, usada pelo State Store para
detectar modificações concorrentes (compare-and-set).

Decisões arquiteturais:
    - Persistência em JSON determinístico (chaves ordenadas)
    - `inputs` guarda os atributos declarados já resolvidos, como enviados
      ao provider; `outputs` guarda os atributos atribuídos pelo provider
    - Segredos ficam em `secrets`, separados de `inputs`, para que um
      Update nunca os reenvie como alteração

Limites explícitos:
    - Não realiza escrita concorrente (responsabilidade do StateStore)
    - Não valida semântica dos atributos
"""

from __future__ import annotations

import copy
import json
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from atlas_converge.core.graph.resource import ResourceMode, ResourceState

STATE_FORMAT_VERSION = 1


@dataclass
class StateEntry:
    address: str
    type: str
    mode: ResourceMode = ResourceMode.MANAGED
    inputs: Dict[str, Any] = field(default_factory=dict)
    outputs: Dict[str, Any] = field(default_factory=dict)
    secrets: Dict[str, str] = field(default_factory=dict)
    secret_specs: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    dependencies: List[str] = field(default_factory=list)
    status: ResourceState = ResourceState.CREATED
    tainted_from: Optional[ResourceState] = None
    version: int = 0

    def has_attribute(self, attribute: str) -> bool:
        return attribute in self.secrets or attribute in self.outputs or attribute in self.inputs

    def attribute(self, attribute: str) -> Any:
        """Valor aplicado de um atributo: segredos, depois saídas, depois entradas."""
        for source in (self.secrets, self.outputs, self.inputs):
            if attribute in source:
                return source[attribute]
        raise KeyError(f"{self.address}.{attribute}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "type": self.type,
            "mode": self.mode.value,
            "inputs": copy.deepcopy(self.inputs),
            "outputs": copy.deepcopy(self.outputs),
            "secrets": dict(self.secrets),
            "secret_specs": copy.deepcopy(self.secret_specs),
            "dependencies": list(self.dependencies),
            "status": self.status.value,
            "tainted_from": self.tainted_from.value if self.tainted_from is not None else None,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StateEntry":
        return cls(
            address=data["address"],
            type=data["type"],
            mode=ResourceMode(data.get("mode", ResourceMode.MANAGED.value)),
            inputs=copy.deepcopy(data.get("inputs", {}) or {}),
            outputs=copy.deepcopy(data.get("outputs", {}) or {}),
            secrets=dict(data.get("secrets", {}) or {}),
            secret_specs=copy.deepcopy(data.get("secret_specs", {}) or {}),
            dependencies=list(data.get("dependencies", []) or []),
            status=ResourceState(data.get("status", ResourceState.CREATED.value)),
            tainted_from=ResourceState(data["tainted_from"]) if data.get("tainted_from") else None,
            version=int(data.get("version", 0)),
        )


@dataclass
class StateSnapshot:
    lineage: str = field(default_factory=lambda: str(uuid.uuid4()))
    serial: int = 0
    entries: Dict[str, StateEntry] = field(default_factory=dict)

    def get(self, address: str) -> Optional[StateEntry]:
        return self.entries.get(address)

    def __contains__(self, address: object) -> bool:
        return address in self.entries

    def copy(self) -> "StateSnapshot":
        return StateSnapshot.from_dict(self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "format_version": STATE_FORMAT_VERSION,
            "lineage": self.lineage,
            "serial": self.serial,
            "entries": {a: e.to_dict() for a, e in self.entries.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StateSnapshot":
        entries = data.get("entries", {}) or {}
        return cls(
            lineage=str(data.get("lineage") or uuid.uuid4()),
            serial=int(data.get("serial", 0)),
            entries={a: StateEntry.from_dict(e) for a, e in entries.items()},
        )


def save_snapshot(snapshot: StateSnapshot, path: Path) -> None:
    """
    Persiste o snapshot em JSON de forma atômica.

    A escrita ocorre em um arquivo temporário no mesmo diretório, seguido
    de `replace`, para que uma interrupção nunca deixe um JSON truncado.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(
        json.dumps(snapshot.to_dict(), ensure_ascii=False, indent=2, sort_keys=True),
        encoding="utf-8",
    )
    tmp.replace(path)


def load_snapshot(path: Path) -> StateSnapshot:
    """Carrega um snapshot persistido; propaga erros de I/O e JSON inválido."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return StateSnapshot.from_dict(data)
