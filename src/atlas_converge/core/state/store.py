"""
State Store — escritor único e serializado do State Snapshot.

O snapshot é o único recurso mutável compartilhado durante um apply.
Toda escrita passa por este store, que:
    - serializa escritas com um lock
    - verifica a versão esperada da entrada (compare-and-set)
    - incrementa `serial` e a `version` da entrada
    - persiste o snapshot imediatamente quando configurado com `path`

Leituras são copy-on-read: `snapshot()` e `get()` retornam cópias
profundas, seguras para planejamento concorrente.

Invariantes:
    - Uma entrada só é gravada após confirmação do provider (responsabilidade
      do executor, que é o único chamador de `write`/`remove` durante o apply)
    - Uma falha de versão nunca altera o snapshot
"""

from __future__ import annotations

import copy
import threading
from dataclasses import replace
from pathlib import Path
from typing import Optional, Union

from atlas_converge.core.exceptions import PlanError, StateConflictError
from atlas_converge.core.graph.resource import ResourceState

from .snapshot import StateEntry, StateSnapshot, load_snapshot, save_snapshot


class StateStore:
    """Store versionado do snapshot, opcionalmente persistido em JSON."""

    def __init__(
        self,
        *,
        snapshot: Optional[StateSnapshot] = None,
        path: Optional[Union[str, Path]] = None,
    ):
        self._snapshot = snapshot if snapshot is not None else StateSnapshot()
        self._path = Path(path) if path is not None else None
        self._lock = threading.Lock()

    @classmethod
    def open(cls, path: Union[str, Path]) -> "StateStore":
        """Abre o store no caminho indicado, criando um snapshot novo se o arquivo não existir."""
        path = Path(path)
        snapshot = load_snapshot(path) if path.exists() else StateSnapshot()
        return cls(snapshot=snapshot, path=path)

    @property
    def path(self) -> Optional[Path]:
        return self._path

    @property
    def lineage(self) -> str:
        return self._snapshot.lineage

    @property
    def serial(self) -> int:
        with self._lock:
            return self._snapshot.serial

    # -----------------------------
    # Leitura (copy-on-read)
    # -----------------------------
    def snapshot(self) -> StateSnapshot:
        with self._lock:
            return self._snapshot.copy()

    def get(self, address: str) -> Optional[StateEntry]:
        with self._lock:
            entry = self._snapshot.entries.get(address)
            return copy.deepcopy(entry) if entry is not None else None

    # -----------------------------
    # Escrita serializada
    # -----------------------------
    def write(self, entry: StateEntry, *, expected_version: Optional[int] = None) -> StateEntry:
        """
        Grava uma entrada confirmada pelo provider.

        Args:
            entry: Entrada a gravar; `version` é ignorada e recalculada.
            expected_version: Versão atual esperada (0 = entrada inexistente).
                `None` desativa a verificação.

        Raises:
            StateConflictError: Se a versão atual divergir da esperada.
        """
        with self._lock:
            current = self._snapshot.entries.get(entry.address)
            self._check_version(entry.address, current, expected_version)

            stored = replace(copy.deepcopy(entry), version=(current.version if current else 0) + 1)
            self._snapshot.entries[entry.address] = stored
            self._commit()
            return copy.deepcopy(stored)

    def remove(self, address: str, *, expected_version: Optional[int] = None) -> None:
        with self._lock:
            current = self._snapshot.entries.get(address)
            self._check_version(address, current, expected_version)
            if current is None:
                return
            del self._snapshot.entries[address]
            self._commit()

    def taint(self, address: str) -> StateEntry:
        """Marca um recurso para substituição forçada no próximo apply."""
        return self._set_status(address, tainted=True)

    def untaint(self, address: str) -> StateEntry:
        """Desfaz o taint, restaurando o status anterior (CREATED ou UPDATED)."""
        return self._set_status(address, tainted=False)

    # -----------------------------
    # Internos
    # -----------------------------
    def _set_status(self, address: str, *, tainted: bool) -> StateEntry:
        with self._lock:
            current = self._snapshot.entries.get(address)
            if current is None:
                raise PlanError(
                    message=f"No state entry for '{address}'",
                    details={"address": address},
                    hint="Só recursos já aplicados podem ser marcados (taint/untaint).",
                )
            if tainted and current.status != ResourceState.TAINTED:
                stored = replace(current, status=ResourceState.TAINTED, tainted_from=current.status)
            elif not tainted and current.status == ResourceState.TAINTED:
                stored = replace(current, status=current.tainted_from or ResourceState.UPDATED, tainted_from=None)
            else:
                stored = current
            stored = replace(stored, version=current.version + 1)
            self._snapshot.entries[address] = stored
            self._commit()
            return copy.deepcopy(stored)

    @staticmethod
    def _check_version(address: str, current: Optional[StateEntry], expected: Optional[int]) -> None:
        if expected is None:
            return
        actual = current.version if current is not None else 0
        if actual != expected:
            raise StateConflictError(
                message=f"State entry '{address}' changed concurrently",
                details={"address": address, "expected_version": expected, "actual_version": actual},
                hint="Outro processo alterou o estado desde o plano. Gere um novo plano.",
                decision_required=True,
            )

    def _commit(self) -> None:
        self._snapshot.serial += 1
        if self._path is not None:
            save_snapshot(self._snapshot, self._path)
