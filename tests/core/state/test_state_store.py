# tests/core/state/test_state_store.py
"""
Testes do State Store e da persistência do State Snapshot.

Os testes asseguram que:
- escritas incrementam `serial` e a `version` da entrada
- compare-and-set rejeita versões divergentes sem alterar o snapshot
- leituras são cópias (mutá-las não afeta o store)
- o snapshot persistido em JSON é reconstruível e mantém a lineage
- taint/untaint alteram apenas o status; untaint restaura o status anterior

Limites explícitos:
    - Não valida o uso do store pelo executor (ver tests/core/engine)
"""

import json
import threading
from pathlib import Path

import pytest

try:
    from atlas_converge.core.exceptions import PlanError, StateConflictError
    from atlas_converge.core.graph import ResourceMode, ResourceState
    from atlas_converge.core.state import StateEntry, StateSnapshot, StateStore, load_snapshot, save_snapshot
except Exception as e:  # noqa: BLE001
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing state package. Implement:\n"
            "- src/atlas_converge/core/state/snapshot.py\n"
            "- src/atlas_converge/core/state/store.py (StateStore)\n"
            f"Import error: {_IMPORT_ERR}"
        )


def _entry(address="thing.a", **kwargs):
    return StateEntry(address=address, type="thing", inputs={"name": "a"}, outputs={"id": "a-1"}, **kwargs)


def test_write_increments_serial_and_version(state_store):
    _require_imports()
    first = state_store.write(_entry(), expected_version=0)
    second = state_store.write(_entry(status=ResourceState.UPDATED), expected_version=1)

    assert first.version == 1
    assert second.version == 2
    assert state_store.serial == 2
    assert state_store.get("thing.a").status == ResourceState.UPDATED


def test_version_mismatch_is_a_conflict(state_store):
    """
    Verifica compare-and-set.

    Invariantes:
        - A exceção exige decisão humana (`decision_required`)
        - O snapshot permanece inalterado
    """
    _require_imports()
    state_store.write(_entry(), expected_version=0)
    before = state_store.snapshot().to_dict()

    with pytest.raises(StateConflictError) as info:
        state_store.write(_entry(), expected_version=0)

    assert info.value.decision_required is True
    assert info.value.details == {"address": "thing.a", "expected_version": 0, "actual_version": 1}
    assert state_store.snapshot().to_dict() == before


def test_remove_checks_version_and_ignores_missing(state_store):
    _require_imports()
    state_store.write(_entry(), expected_version=0)

    with pytest.raises(StateConflictError):
        state_store.remove("thing.a", expected_version=5)

    state_store.remove("thing.a", expected_version=1)
    assert state_store.get("thing.a") is None
    state_store.remove("thing.a")
    assert state_store.serial == 2


def test_reads_are_copies(state_store):
    _require_imports()
    state_store.write(_entry())

    state_store.get("thing.a").inputs["name"] = "mutated"
    state_store.snapshot().entries["thing.a"].outputs.clear()

    entry = state_store.get("thing.a")
    assert entry.inputs == {"name": "a"}
    assert entry.outputs == {"id": "a-1"}


def test_taint_and_untaint(state_store):
    _require_imports()
    state_store.write(_entry())

    tainted = state_store.taint("thing.a")
    assert tainted.status == ResourceState.TAINTED
    assert tainted.tainted_from == ResourceState.CREATED

    untainted = state_store.untaint("thing.a")
    assert untainted.status == ResourceState.CREATED
    assert untainted.tainted_from is None
    assert untainted.version == 3


def test_untaint_restores_updated_status(tmp_path: Path):
    _require_imports()
    store = StateStore.open(tmp_path / "state.json")
    store.write(_entry(status=ResourceState.UPDATED))
    store.taint("thing.a")
    store.taint("thing.a")

    reopened = StateStore.open(tmp_path / "state.json")
    assert reopened.get("thing.a").tainted_from == ResourceState.UPDATED
    assert reopened.untaint("thing.a").status == ResourceState.UPDATED


def test_taint_of_missing_entry_is_a_plan_error(state_store):
    _require_imports()
    with pytest.raises(PlanError):
        state_store.taint("thing.ghost")


def test_persisted_snapshot_round_trip(tmp_path: Path):
    _require_imports()
    path = tmp_path / ".atlas" / "state.json"
    store = StateStore.open(path)
    store.write(
        _entry(
            secrets={"result": "s3cret"},
            secret_specs={"result": {"length": 32}},
            dependencies=["thing.b"],
        )
    )
    store.write(StateEntry(address="data.vpc.network", type="vpc", mode=ResourceMode.DATA, outputs={"cidr": "10.0.0.0/16"}))

    reopened = StateStore.open(path)

    assert reopened.lineage == store.lineage
    assert reopened.serial == 2
    assert reopened.snapshot().to_dict() == store.snapshot().to_dict()
    assert reopened.get("data.vpc.network").mode == ResourceMode.DATA
    assert reopened.get("thing.a").secrets == {"result": "s3cret"}

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["format_version"] == 1
    assert not path.with_name("state.json.tmp").exists()


def test_open_missing_path_starts_empty(tmp_path: Path):
    _require_imports()
    store = StateStore.open(tmp_path / "state.json")
    assert store.snapshot().entries == {}
    assert store.path == tmp_path / "state.json"
    assert not (tmp_path / "state.json").exists()


def test_save_and_load_snapshot_functions(tmp_path: Path):
    _require_imports()
    snapshot = StateSnapshot(lineage="fixed-lineage", serial=4)
    snapshot.entries["thing.a"] = _entry(version=4)

    save_snapshot(snapshot, tmp_path / "s.json")
    loaded = load_snapshot(tmp_path / "s.json")

    assert loaded.lineage == "fixed-lineage"
    assert loaded.get("thing.a").version == 4


def test_concurrent_writes_are_serialized(state_store):
    _require_imports()

    def writer(i):
        state_store.write(StateEntry(address=f"thing.r{i}", type="thing"), expected_version=0)

    threads = [threading.Thread(target=writer, args=(i,)) for i in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert state_store.serial == 20
    assert len(state_store.snapshot().entries) == 20
