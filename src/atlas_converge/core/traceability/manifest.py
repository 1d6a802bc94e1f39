"""
Apply Manifest v1 — rastreabilidade forense de um apply do Atlas Converge.

O Manifest consolida, de forma determinística e auditável:
    - metadados da execução (run)
    - hashes semânticos de entradas (config, plano) e identidade do estado
      base (lineage + serial)
    - estado incremental de cada ação do plano
    - Event Log ordenado de eventos explícitos

Princípios fundamentais:
    - Nenhum evento é emitido implicitamente
    - Toda mutação ocorre por chamadas explícitas da API
    - A ordem do Event Log reflete a ordem real de conclusão das ações
    - O Manifest é serializável e reconstruível (round-trip)

Decisões arquiteturais:
    - UTC é o timezone canônico para todos os timestamps
    - O formato de persistência é JSON determinístico
    - Valores sensíveis nunca entram no Manifest (apenas resultados e
      payloads de erro já serializados)

Limites explícitos:
    - Não executa ações
    - Não decide políticas de execução (fail-fast, skip, retry)
    - Não é thread-safe; o executor registra eventos a partir de uma única thread
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


def _ensure_tzaware_utc(dt: datetime) -> datetime:
    """
    Normaliza um timestamp para timezone-aware em UTC.

    Timestamps timezone-naive são assumidos como UTC; os demais são
    convertidos, preservando o instante representado.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _iso(dt: datetime) -> str:
    return _ensure_tzaware_utc(dt).isoformat()


def _ms_between(start: datetime, end: datetime) -> int:
    """Duração em milissegundos, nunca negativa."""
    s = _ensure_tzaware_utc(start)
    e = _ensure_tzaware_utc(end)
    return max(0, int((e - s).total_seconds() * 1000))


@dataclass
class ApplyManifest:
    """
    Registro forense de um apply.

    Campos principais:
        - run: metadados da execução (run_id, started_at, engine_version)
        - inputs: config_hash, plan_hash, state_lineage, state_serial
        - actions: estado incremental de cada ação, indexado por endereço
        - events: Event Log ordenado

    Invariantes:
        - `actions` é sempre um dicionário indexado por endereço
        - `events` é sempre uma lista ordenada
        - A estrutura completa é serializável em JSON
    """

    run: Dict[str, Any]
    inputs: Dict[str, Any]
    actions: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run": dict(self.run),
            "inputs": dict(self.inputs),
            "actions": {k: dict(v) for k, v in self.actions.items()},
            "events": [dict(e) for e in self.events],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApplyManifest":
        """Reconstrução permissiva: campos ausentes viram estruturas vazias."""
        return cls(
            run=dict(data.get("run", {})),
            inputs=dict(data.get("inputs", {})),
            actions={k: dict(v) for k, v in (data.get("actions", {}) or {}).items()},
            events=[dict(e) for e in (data.get("events", []) or [])],
        )


def create_manifest(
    *,
    run_id: str,
    started_at: datetime,
    engine_version: str,
    config_hash: str,
    plan_hash: str,
    state_lineage: Optional[str],
    state_serial: int,
) -> ApplyManifest:
    """
    Cria o Manifest inicial de um apply.

    ⚠️ Importante: esta função **não emite eventos implicitamente**.
    O Event Log inicia vazio e só é preenchido por chamadas explícitas
    a `add_event`, `action_started`, `action_finished`, `action_failed`
    ou `action_skipped`.

    Args:
        run_id: Identificador único da execução.
        started_at: Timestamp de início do apply.
        engine_version: Versão do Atlas Converge utilizada.
        config_hash: Hash semântico da configuração resolvida.
        plan_hash: Hash canônico do plano aplicado.
        state_lineage: Lineage do State Snapshot base do plano.
        state_serial: Serial do State Snapshot base do plano.

    Returns:
        ApplyManifest: Manifest com `actions` e `events` vazios.
    """
    started_at = _ensure_tzaware_utc(started_at)
    return ApplyManifest(
        run={
            "run_id": run_id,
            "started_at": _iso(started_at),
            "engine_version": engine_version,
        },
        inputs={
            "config_hash": config_hash,
            "plan_hash": plan_hash,
            "state_lineage": state_lineage,
            "state_serial": state_serial,
        },
    )


def add_event(
    manifest: ApplyManifest,
    *,
    event_type: str,
    ts: datetime,
    address: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Adiciona um evento explícito ao Event Log.

    Cada chamada adiciona exatamente um evento; eventos não são
    reordenados nem deduplicados.
    """
    ev: Dict[str, Any] = {"event_type": event_type, "timestamp": _iso(ts)}
    if address is not None:
        ev["address"] = address
    if payload is not None:
        ev["payload"] = payload
    manifest.events.append(ev)


def action_started(manifest: ApplyManifest, *, address: str, kind: str, ts: datetime) -> None:
    manifest.actions.setdefault(address, {}).update(
        {
            "address": address,
            "kind": kind,
            "status": "running",
            "started_at": _iso(ts),
        }
    )
    add_event(manifest, event_type="action_started", ts=ts, address=address, payload={"kind": kind})


def action_finished(
    manifest: ApplyManifest,
    *,
    address: str,
    ts: datetime,
    result: Dict[str, Any],
) -> None:
    """
    Registra a conclusão de uma ação.

    A duração é calculada a partir de `started_at` quando disponível.
    `result` é a forma serializada de `ActionResult`.
    """
    a = manifest.actions.setdefault(address, {"address": address})
    started_iso = a.get("started_at")
    started_dt = datetime.fromisoformat(started_iso) if started_iso else ts

    status = result.get("status", "success")
    a.update(
        {
            "kind": result.get("kind", a.get("kind")),
            "status": status,
            "finished_at": _iso(ts),
            "duration_ms": _ms_between(started_dt, ts),
            "summary": result.get("summary"),
            "attempts": result.get("attempts", 0),
            "resource_state": result.get("resource_state"),
            "warnings": result.get("warnings", []) or [],
        }
    )
    add_event(
        manifest,
        event_type="action_finished",
        ts=ts,
        address=address,
        payload={"status": status, "duration_ms": a["duration_ms"]},
    )


def action_failed(
    manifest: ApplyManifest,
    *,
    address: str,
    ts: datetime,
    error: Dict[str, Any],
    attempts: int = 1,
) -> None:
    a = manifest.actions.setdefault(address, {"address": address})
    a.update(
        {
            "status": "failed",
            "finished_at": _iso(ts),
            "attempts": attempts,
            "error": dict(error),
        }
    )
    add_event(
        manifest,
        event_type="action_failed",
        ts=ts,
        address=address,
        payload={"type": error.get("type"), "message": error.get("message")},
    )


def action_skipped(
    manifest: ApplyManifest,
    *,
    address: str,
    kind: str,
    ts: datetime,
    reason: str,
    status: str = "skipped",
) -> None:
    """Ação não tentada: dependência sem sucesso (`skipped`) ou apply cancelado (`canceled`)."""
    manifest.actions.setdefault(address, {}).update(
        {
            "address": address,
            "kind": kind,
            "status": status,
            "finished_at": _iso(ts),
            "summary": reason,
        }
    )
    add_event(
        manifest,
        event_type="action_skipped",
        ts=ts,
        address=address,
        payload={"status": status, "reason": reason},
    )


def save_manifest(manifest: ApplyManifest, path: Path) -> None:
    """
    Persiste o Manifest em JSON determinístico (`sort_keys=True`).

    Raises:
        OSError: Falha ao criar diretórios ou escrever o arquivo.
        TypeError: Conteúdo não serializável em JSON.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(manifest.to_dict(), ensure_ascii=False, indent=2, sort_keys=True),
        encoding="utf-8",
    )


def load_manifest(path: Path) -> ApplyManifest:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return ApplyManifest.from_dict(data)
