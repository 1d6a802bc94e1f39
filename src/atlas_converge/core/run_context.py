# src/atlas_converge/core/run_context.py
"""
RunContext — Contexto canônico de um plan/apply do Atlas Converge.

O RunContext acompanha uma execução do engine do início ao fim e é o
**único meio permitido** de:
- registro de logs estruturados de execução
- coleta de warnings não fatais associados a recursos
- acesso à configuração efetiva e ao Manifest da run

Princípios fundamentais:
- Isolamento por execução (cada run possui seu próprio contexto)
- Eventos são registrados em ordem de chamada
- Registro é seguro entre threads (o executor roda ações em paralelo)
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from atlas_converge.core.traceability.manifest import ApplyManifest


@dataclass
class RunContext:
    """
    Contexto de execução compartilhado de uma run do engine.

    Campos canônicos:
    - run_id: identificador único da execução
    - created_at: timestamp UTC de criação do contexto
    - config: configuração efetiva (defaults + local deep-merge)
    - meta: metadados de execução (ex.: state_path, runner)
    - manifest: Manifest da run, quando a rastreabilidade está ativa
    - warnings: warnings por endereço de recurso
    - events: log estruturado de eventos
    """

    run_id: str
    created_at: str
    config: Dict[str, Any]
    meta: Dict[str, Any] = field(default_factory=dict)
    manifest: Optional[ApplyManifest] = None

    warnings: Dict[str, List[str]] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)

    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    @classmethod
    def new(cls, *, config: Optional[Dict[str, Any]] = None, **meta: Any) -> "RunContext":
        return cls(
            run_id=uuid.uuid4().hex,
            created_at=datetime.now(timezone.utc).isoformat(),
            config=dict(config or {}),
            meta=dict(meta),
        )

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, address: Optional[str], level: str, message: str, **extra: Any) -> None:
        event = {
            "run_id": self.run_id,
            "address": address,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        with self._lock:
            self.events.append(event)

    def add_warning(self, *, address: str, message: str) -> None:
        with self._lock:
            self.warnings.setdefault(address, []).append(message)

    def warnings_for(self, address: str) -> List[str]:
        with self._lock:
            return list(self.warnings.get(address, []))

    def events_for(self, address: str) -> List[Dict[str, Any]]:
        with self._lock:
            return [e for e in self.events if e.get("address") == address]
