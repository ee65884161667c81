"""
Unit tests for the operation planner.
"""
import pytest
from nssm_exec.MANAGERS.operation_planner import OperationPlanner
from nssm_exec.MODELS.errors import PlanError
from nssm_exec.MODELS.lifecycle import LifecycleAction, RequestedAction


def names(steps):
    return [str(step) for step in steps]


def test_recreate_reference_order(make_config):
    config = make_config({"name": "svc-a", "dependencies": []},
                         {"name": "svc-b", "dependencies": ["svc-a"]})
    steps = OperationPlanner().plan(RequestedAction.RECREATE, config)
    assert names(steps) == [
        "stop(svc-b)", "stop(svc-a)",
        "remove(svc-b)", "remove(svc-a)",
        "install(svc-a)", "install(svc-b)",
        "start(svc-a)", "start(svc-b)",
    ]


def test_stop_falls_back_to_reverse_declaration_order(make_config):
    config = make_config({"name": "one"}, {"name": "two"}, {"name": "three"})
    steps = OperationPlanner().plan(RequestedAction.STOP, config)
    assert names(steps) == ["stop(three)", "stop(two)", "stop(one)"]
    assert all(step.commands == (("stop", step.service_name),) for step in steps)


def test_stop_puts_dependents_first(make_config):
    config = make_config({"name": "web", "dependencies": ["db"]}, {"name": "db"})
    steps = OperationPlanner().plan(RequestedAction.STOP, config)
    assert names(steps) == ["stop(web)", "stop(db)"]


def test_recreate_respects_every_dependency_edge(make_config):
    config = make_config(
        {"name": "web", "dependencies": ["api", "cache"]},
        {"name": "api", "dependencies": ["db"]},
        {"name": "cache"},
        {"name": "db"},
        {"name": "worker", "dependencies": ["db", "cache"]},
    )
    steps = OperationPlanner().plan(RequestedAction.RECREATE, config)
    position = {(s.service_name, s.action): i for i, s in enumerate(steps)}

    for svc in config.services:
        own = [position[(svc.name, action)] for action in LifecycleAction]
        assert own == sorted(own), f"{svc.name} steps out of order"
        for dep in svc.dependencies:
            for action in (LifecycleAction.INSTALL, LifecycleAction.START):
                assert position[(dep, action)] < position[(svc.name, action)]
            for action in (LifecycleAction.STOP, LifecycleAction.REMOVE):
                assert position[(svc.name, action)] < position[(dep, action)]


def test_recreate_skips_start_when_not_wanted(make_config):
    config = make_config(
        {"name": "manual", "start_on_create": False},
        {"name": "off", "startup_mode": "disabled"},
        {"name": "forced", "startup_mode": "disabled", "start_on_create": True},
    )
    steps = OperationPlanner().plan(RequestedAction.RECREATE, config)
    starts = [s.service_name for s in steps if s.action == LifecycleAction.START]
    assert starts == ["forced"]


def test_install_commands(make_config):
    config = make_config({
        "name": "web",
        "executable_path": "C:\\apps\\web\\web.exe",
        "arguments": ["--port", "80"],
        "display_name": "Web Frontend",
        "description": "Serves the site",
        "startup_mode": "manual",
        "dependencies": ["db", "Tcpip"],
        "account": {"user": ".\\web", "password": ""},
    })
    steps = OperationPlanner().plan(RequestedAction.RECREATE, config)
    install = next(s for s in steps if s.action == LifecycleAction.INSTALL)

    assert install.commands == (
        ("install", "web", "C:\\apps\\web\\web.exe", "--port", "80"),
        ("set", "web", "AppDirectory", "C:\\apps\\web"),
        ("set", "web", "DisplayName", "Web Frontend"),
        ("set", "web", "Description", "Serves the site"),
        ("set", "web", "Start", "SERVICE_DEMAND_START"),
        ("set", "web", "DependOnService", "db", "Tcpip"),
        ("set", "web", "ObjectName", ".\\web", ""),
    )
    remove = next(s for s in steps if s.action == LifecycleAction.REMOVE)
    assert remove.commands == (("remove", "web", "confirm"),)


def test_steps_are_immutable(make_config):
    steps = OperationPlanner().plan(RequestedAction.STOP, make_config({"name": "a"}))
    with pytest.raises(AttributeError):
        steps[0].service_name = "b"


def test_cycle_produces_no_plan(make_config):
    config = make_config({"name": "a", "dependencies": ["b"]},
                         {"name": "b", "dependencies": ["a"]})
    for action in RequestedAction:
        with pytest.raises(PlanError) as exc_info:
            OperationPlanner().plan(action, config)
        assert sorted(exc_info.value.services) == ["a", "b"]
