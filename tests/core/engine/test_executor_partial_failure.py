# tests/core/engine/test_executor_partial_failure.py
"""
Testes de falha parcial do Executor (fail_fast desabilitado).

Uma falha marca apenas a subárvore dependente como SKIPPED; ramos
independentes continuam e o estado gravado reflete exatamente o que
o provider confirmou. Não existe rollback silencioso.

Invariantes:
    - A ação que falha é FAILED e carrega um AtlasErrorPayload serializado
    - Dependentes diretos e transitivos são SKIPPED com o motivo explícito
    - Ramos independentes terminam com SUCCESS e são gravados no estado
    - Uma ação FAILED nunca grava entrada no estado
"""

import pytest

try:
    from atlas_converge.core.engine.planner import plan_changes
    from atlas_converge.core.engine.types import ActionStatus
    from atlas_converge.core.errors import PROVIDER_ERROR, STATE_CONFLICT
    from atlas_converge.core.graph import UpdatePolicy, build_graph
except Exception as e:  # noqa: BLE001
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing executor/planner. Implement:\n"
            "- src/atlas_converge/core/engine/executor.py (Executor)\n"
            f"Import error: {_IMPORT_ERR}"
        )


@pytest.fixture
def chain(make_resource):
    """a → b → c, mais `d` independente."""
    a = make_resource("a")
    b = make_resource("b", parent=a.ref("id"))
    c = make_resource("c", parent=b.ref("id"))
    d = make_resource("d")
    return [a, b, c, d]


def test_failure_skips_only_dependents(make_executor, state_store, recording_provider, chain):
    _require_imports()
    recording_provider.fail("create", "a")
    graph = build_graph(chain)

    report = make_executor().apply(plan_changes(graph, state_store.snapshot()), graph)

    assert not report.ok
    assert report.failed == ["thing.a"]
    assert report.skipped == ["thing.b", "thing.c"]
    assert report.succeeded == ["thing.d"]
    assert report.results["thing.b"].summary == "skipped due to failed dependency: thing.a"
    assert report.results["thing.c"].summary == "skipped due to skipped dependency: thing.b"

    snapshot = state_store.snapshot()
    assert "thing.a" not in snapshot
    assert "thing.b" not in snapshot
    assert "thing.d" in snapshot
    assert sorted(recording_provider.names("create")) == ["a", "d"]


def test_failed_result_carries_error_payload(make_executor, state_store, recording_provider, chain):
    _require_imports()
    recording_provider.fail("create", "a")
    graph = build_graph(chain)

    report = make_executor().apply(plan_changes(graph, state_store.snapshot()), graph)

    error = report.results["thing.a"].error
    assert error["type"] == PROVIDER_ERROR
    assert error["details"]["address"] == "thing.a"
    assert error["details"]["transient"] is False
    assert report.errors() == {"thing.a": error}
    assert report.to_dict()["failed"] == ["thing.a"]


def test_foreign_exception_is_wrapped_as_provider_error(make_executor, state_store, recording_provider, chain):
    _require_imports()
    recording_provider.fail("create", "d", RuntimeError("connection reset"))
    graph = build_graph(chain)

    report = make_executor().apply(plan_changes(graph, state_store.snapshot()), graph)

    error = report.results["thing.d"].error
    assert error["type"] == PROVIDER_ERROR
    assert error["details"]["operation"] == "create"
    assert error["details"]["cause"] == "RuntimeError: connection reset"
    assert report.succeeded == ["thing.a", "thing.b", "thing.c"]


def test_failure_is_logged_and_rerun_resumes(make_executor, state_store, recording_provider, chain, dummy_ctx):
    """Depois de corrigida a causa, um novo plano contém apenas o que faltou."""
    _require_imports()
    recording_provider.fail("create", "b")
    graph = build_graph(chain)
    make_executor().apply(plan_changes(graph, state_store.snapshot()), graph)

    errors = [e for e in dummy_ctx.events_for("thing.b") if e["level"] == "error"]
    assert errors and errors[0]["error_type"] == PROVIDER_ERROR

    recording_provider.clear_failures()
    plan = plan_changes(graph, state_store.snapshot())
    assert plan.addresses() == ["thing.b", "thing.c"]

    assert make_executor().apply(plan, graph).ok


def test_concurrent_state_change_is_a_conflict(make_executor, make_resource, state_store, recording_provider):
    """
    A entrada foi alterada (taint) entre o plano e o apply: a ação falha com
    STATE_CONFLICT, exige decisão humana e o provider não é chamado.
    """
    _require_imports()
    policies = {"thing": {"size": UpdatePolicy.IN_PLACE}}
    graph = build_graph([make_resource("a", size=1)])
    make_executor().apply(plan_changes(graph, state_store.snapshot(), policies=policies), graph)

    graph = build_graph([make_resource("a", size=2)])
    plan = plan_changes(graph, state_store.snapshot(), policies=policies)
    state_store.taint("thing.a")

    report = make_executor().apply(plan, graph)

    result = report.results["thing.a"]
    assert result.status == ActionStatus.FAILED
    assert result.error["type"] == STATE_CONFLICT
    assert result.error["decision_required"] is True
    assert result.error["details"] == {"address": "thing.a", "expected_version": 1, "actual_version": 2}
    assert recording_provider.names("update") == []
