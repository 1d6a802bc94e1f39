# tests/core/engine/test_planner_diff.py
"""
Testes das decisões de diff do planner.

Os testes asseguram que:
- estado convergido produz plano vazio (idempotência)
- atributo com política IN_PLACE produz Update; sem regra, Replace
- recurso tainted ou listado em `replace=[...]` produz Replace
- saídas de recursos a criar/substituir resolvem para UNKNOWN e propagam
- mudança no `SecretSpec` força Replace
- valores sensíveis nunca aparecem na forma serializada do plano
- o planner não muta o snapshot recebido

Limites explícitos:
    - Não valida a tabela de políticas do módulo de banco (ver test_policy.py)
"""

import json

import pytest

try:
    from atlas_converge.core.engine.planner import plan_changes
    from atlas_converge.core.engine.types import SENSITIVE_MASK, ActionKind
    from atlas_converge.core.exceptions import PlanError
    from atlas_converge.core.graph import (
        UNKNOWN,
        Lifecycle,
        Resource,
        ResourceState,
        SecretSpec,
        UpdatePolicy,
        build_graph,
    )
    from atlas_converge.core.state.snapshot import StateEntry, StateSnapshot
except Exception as e:  # noqa: BLE001
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing planner. Implement:\n"
            "- src/atlas_converge/core/engine/planner.py (plan_changes)\n"
            f"Import error: {_IMPORT_ERR}"
        )


def _entry(address, inputs, *, outputs=None, status=None, secrets=None, secret_specs=None, dependencies=()):
    return StateEntry(
        address=address,
        type=address.split(".")[0],
        inputs=dict(inputs),
        outputs=dict(outputs or {}),
        secrets=dict(secrets or {}),
        secret_specs=dict(secret_specs or {}),
        dependencies=list(dependencies),
        status=status or ResourceState.CREATED,
        version=3,
    )


def _snapshot(*entries):
    snapshot = StateSnapshot(lineage="lineage-test", serial=2)
    for entry in entries:
        snapshot.entries[entry.address] = entry
    return snapshot


def _password(length=32):
    return Resource(
        type="random_password",
        name="master",
        attributes={"length": 32},
        secrets={"result": SecretSpec(length=length)},
    )


def test_create_diff_lists_all_values_and_unknown_outputs(make_resource):
    _require_imports()
    a = make_resource("a", size=1)
    b = make_resource("b", parent=a.ref("id"), parent_name=a.ref("name"))

    plan = plan_changes(build_graph([a, b]), StateSnapshot())

    create_b = plan.get("thing.b")
    assert create_b.reason == "not present in state"
    diff = {c.name: c for c in create_b.diff}
    assert diff["parent"].before is None
    assert diff["parent"].after is UNKNOWN
    # Atributo declarado do recurso referenciado é conhecido antes do apply.
    assert diff["parent_name"].after == "a"
    assert create_b.to_dict()["diff"][1]["after"] == "(known after apply)"


def test_converged_state_is_an_empty_plan(make_resource):
    """
    Verifica idempotência: estado igual ao declarado → nenhuma ação.

    Invariantes:
        - `plan.is_empty` é verdadeiro
        - o snapshot recebido não é mutado
    """
    _require_imports()
    a = make_resource("a", size=1)
    b = make_resource("b", parent=a.ref("id"))
    snapshot = _snapshot(
        _entry("thing.a", {"name": "a", "size": 1}, outputs={"id": "a-1"}),
        _entry("thing.b", {"name": "b", "parent": "a-1"}, outputs={"id": "b-2"}, dependencies=["thing.a"]),
    )
    before = snapshot.to_dict()

    plan = plan_changes(build_graph([a, b]), snapshot)

    assert plan.is_empty
    assert snapshot.to_dict() == before


def test_unlisted_attribute_change_requires_replacement(make_resource):
    _require_imports()
    a = make_resource("a", size=2)
    snapshot = _snapshot(_entry("thing.a", {"name": "a", "size": 1}, outputs={"id": "a-1"}))

    action = plan_changes(build_graph([a]), snapshot).get("thing.a")

    assert action.kind == ActionKind.REPLACE
    assert action.reason == "requires replacement: size"
    assert action.prior_version == 3
    assert action.diff[0].requires_replacement is True


def test_in_place_policy_produces_update(make_resource):
    _require_imports()
    a = make_resource("a", size=2)
    snapshot = _snapshot(_entry("thing.a", {"name": "a", "size": 1}, outputs={"id": "a-1"}))

    action = plan_changes(
        build_graph([a]), snapshot, policies={"thing": {"size": UpdatePolicy.IN_PLACE}}
    ).get("thing.a")

    assert action.kind == ActionKind.UPDATE
    assert action.reason == "update in place: size"
    assert [(c.name, c.before, c.after) for c in action.diff] == [("size", 1, 2)]


def test_lifecycle_override_beats_policy_table():
    _require_imports()
    a = Resource(
        type="thing",
        name="a",
        attributes={"name": "a", "size": 2},
        outputs=("id",),
        lifecycle=Lifecycle(update_policy={"size": UpdatePolicy.IN_PLACE}),
    )
    snapshot = _snapshot(_entry("thing.a", {"name": "a", "size": 1}, outputs={"id": "a-1"}))

    assert plan_changes(build_graph([a]), snapshot).get("thing.a").kind == ActionKind.UPDATE


def test_tags_are_cosmetic(make_resource):
    _require_imports()
    a = make_resource("a", tags={"team": "data"})
    snapshot = _snapshot(_entry("thing.a", {"name": "a", "tags": {"team": "core"}}, outputs={"id": "a-1"}))

    assert plan_changes(build_graph([a]), snapshot).get("thing.a").kind == ActionKind.UPDATE


def test_tainted_entry_is_replaced_and_cascades_unknown(make_resource):
    """
    Um recurso tainted é substituído; quem referencia seu `id` passa a ver
    UNKNOWN e também precisa ser substituído (sem regra IN_PLACE).
    """
    _require_imports()
    a = make_resource("a")
    b = make_resource("b", parent=a.ref("id"))
    c = make_resource("c", parent_name=a.ref("name"))
    snapshot = _snapshot(
        _entry("thing.a", {"name": "a"}, outputs={"id": "a-1"}, status=ResourceState.TAINTED),
        _entry("thing.b", {"name": "b", "parent": "a-1"}, outputs={"id": "b-2"}),
        _entry("thing.c", {"name": "c", "parent_name": "a"}, outputs={"id": "c-3"}),
    )

    plan = plan_changes(build_graph([a, b, c]), snapshot)

    assert plan.get("thing.a").kind == ActionKind.REPLACE
    assert plan.get("thing.a").reason == "tainted"
    assert plan.get("thing.b").kind == ActionKind.REPLACE
    assert plan.get("thing.b").depends_on == ["thing.a"]
    # Atributos declarados não mudam com a substituição.
    assert plan.get("thing.c") is None


def test_unknown_with_in_place_policy_is_an_update(make_resource):
    _require_imports()
    a = make_resource("a")
    b = make_resource("b", parent=a.ref("id"))
    snapshot = _snapshot(
        _entry("thing.a", {"name": "a"}, outputs={"id": "a-1"}),
        _entry("thing.b", {"name": "b", "parent": "a-1"}, outputs={"id": "b-2"}),
    )

    plan = plan_changes(
        build_graph([a, b]),
        snapshot,
        replace=["thing.a"],
        policies={"thing": {"parent": UpdatePolicy.IN_PLACE}},
    )

    assert plan.get("thing.a").reason == "replacement requested"
    assert plan.get("thing.b").kind == ActionKind.UPDATE
    assert plan.get("thing.b").diff[0].after is UNKNOWN


def test_replace_of_undeclared_address_is_rejected(make_resource):
    _require_imports()
    with pytest.raises(PlanError) as info:
        plan_changes(build_graph([make_resource("a")]), StateSnapshot(), replace=["thing.ghost"])
    assert info.value.details == {"addresses": ["thing.ghost"]}


def test_secret_spec_change_forces_replacement():
    _require_imports()
    pw = _password(length=48)
    snapshot = _snapshot(
        _entry(
            "random_password.master",
            {"length": 32},
            secrets={"result": "x" * 32},
            secret_specs={"result": SecretSpec(length=32).to_dict()},
        )
    )

    action = plan_changes(build_graph([pw]), snapshot).get("random_password.master")

    assert action.kind == ActionKind.REPLACE
    assert action.reason == "requires replacement: secrets.result"


def test_sensitive_values_are_masked(make_resource):
    _require_imports()
    pw = _password()
    db = make_resource("db", password=pw.ref("result"), port=5432)
    snapshot = _snapshot(
        _entry(
            "random_password.master",
            {"length": 32},
            secrets={"result": "s3cret-new"},
            secret_specs={"result": SecretSpec().to_dict()},
        ),
        _entry("thing.db", {"name": "db", "password": "s3cret-old", "port": 5432}, outputs={"id": "db-1"}),
    )

    plan = plan_changes(build_graph([pw, db]), snapshot, policies={"thing": {"password": UpdatePolicy.IN_PLACE}})

    change = plan.get("thing.db").diff[0]
    assert change.sensitive is True
    assert change.to_dict()["before"] == SENSITIVE_MASK
    assert change.to_dict()["after"] == SENSITIVE_MASK
    assert "s3cret" not in json.dumps(plan.to_dict())


def test_missing_output_in_state_is_a_plan_error(make_resource):
    _require_imports()
    a = make_resource("a")
    b = make_resource("b", parent=a.ref("id"))
    snapshot = _snapshot(_entry("thing.a", {"name": "a"}, outputs={}))

    with pytest.raises(PlanError) as info:
        plan_changes(build_graph([a, b]), snapshot)
    assert info.value.details["target"] == "thing.a"


def test_delete_diff_has_before_values():
    _require_imports()
    snapshot = _snapshot(_entry("thing.gone", {"name": "gone", "size": 3}, outputs={"id": "gone-1"}))

    action = plan_changes(build_graph([]), snapshot).get("thing.gone")

    assert action.kind == ActionKind.DELETE
    assert action.reason == "not declared"
    assert {(c.name, c.before, c.after) for c in action.diff} == {("name", "gone", None), ("size", 3, None)}
