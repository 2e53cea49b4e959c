"""Test execution planning."""

import random

import pytest

from conftest import spec
from stackdeploy.errors import CyclicDependencyError
from stackdeploy.graph import DependencyGraph, build_graph
from stackdeploy.models import ResourceSpec
from stackdeploy.scheduler import create_plan, plan_resources


def _assert_respects_edges(plan):
    position = {rid: i for i, rid in enumerate(plan.order)}
    for rid, dep in plan.graph.edges():
        assert position[dep] < position[rid], f"{dep} must precede {rid}"


def test_gateway_plan_order(gateway_resources):
    plan = plan_resources(gateway_resources)
    assert plan.order == ["rg", "storage", "keyvault", "gateway"]


def test_tie_break_follows_declaration_order():
    plan = plan_resources([spec("gateway", "keyvault", "storage"), spec("keyvault"), spec("storage")])
    assert plan.order == ["keyvault", "storage", "gateway"]


def test_independent_resources_keep_declaration_order():
    plan = plan_resources([spec("c"), spec("a"), spec("b")])
    assert plan.order == ["c", "a", "b"]


def test_blocked_resource_waits_for_its_dependency():
    # "z" is declared first but only becomes eligible once "y" is done
    plan = plan_resources([spec("z", "y"), spec("w"), spec("y")])
    assert plan.order == ["w", "y", "z"]


def test_newly_ready_resource_beats_later_declarations():
    plan = plan_resources([spec("y"), spec("z", "y"), spec("w")])
    assert plan.order == ["y", "z", "w"]


def test_plan_respects_every_edge_on_random_dags():
    rng = random.Random(42)
    for _ in range(25):
        n = rng.randint(1, 20)
        ids = [f"r{i}" for i in range(n)]
        specs = []
        for i, rid in enumerate(ids):
            deps = rng.sample(ids[:i], k=rng.randint(0, min(i, 3)))
            specs.append(spec(rid, *deps))
        rng.shuffle(specs)
        plan = plan_resources(specs)
        assert sorted(plan.order) == sorted(ids)
        _assert_respects_edges(plan)


def test_planning_twice_gives_identical_plans(gateway_resources):
    first = plan_resources(gateway_resources)
    second = create_plan(build_graph(gateway_resources))
    assert first.order == second.order
    assert first.resources == second.resources


def test_plan_carries_specs():
    plan = plan_resources([spec("rg", type="resource_group", name="rg-1")])
    assert len(plan) == 1
    [rg] = list(plan)
    assert rg.properties == {"name": "rg-1"}


def test_waves(gateway_resources):
    plan = plan_resources(gateway_resources)
    assert plan.waves() == [["rg"], ["storage", "keyvault"], ["gateway"]]


def test_waves_empty_plan():
    assert plan_resources([]).waves() == []


def test_create_plan_rechecks_cycles():
    # Built directly, bypassing build_graph's cycle check
    graph = DependencyGraph([spec("root"), spec("a", "b"), spec("b", "a")])
    with pytest.raises(CyclicDependencyError) as exc:
        create_plan(graph)
    assert exc.value.cycle == ["a", "b", "a"]


def test_plan_resources_rejects_cycles():
    with pytest.raises(CyclicDependencyError):
        plan_resources([spec("a", "b"), spec("b", "a")])


def test_long_chain_declared_dependents_first():
    specs = [spec(f"r{i}", f"r{i + 1}") for i in range(1999)] + [spec("r1999")]
    plan = plan_resources(specs)
    assert plan.order == [f"r{i}" for i in range(1999, -1, -1)]
    assert len(plan.waves()) == 2000


def test_plan_ignores_later_edits_to_caller_properties():
    props = {"name": "rg-1"}
    plan = plan_resources([ResourceSpec(id="rg", type="resource_group", properties=props)])
    props["name"] = "hijacked"
    assert plan.graph.spec("rg").properties["name"] == "rg-1"
