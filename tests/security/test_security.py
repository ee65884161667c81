import sys
from nssm_exec.MANAGERS.nssm_invoker import NssmInvoker
from nssm_exec.MANAGERS.operation_planner import OperationPlanner
from nssm_exec.MODELS.lifecycle import LifecycleAction, LifecycleStep, RequestedAction
from nssm_exec.RUNNERS.nssm_commands import NssmCommands
from nssm_exec.RUNNERS.process_runner import ProcessRunner

def test_command_injection_attempt(tmp_path):
    """
    Manager arguments are passed without a shell, so shell operators in
    service names or arguments stay literal.
    """
    injected_file = tmp_path / "injected.txt"
    runner = ProcessRunner(sys.executable, name="test_injection")
    result = runner.run(["-c", "import sys; print(sys.argv[1:])",
                         "&", "echo", "injected", ">", str(injected_file)])

    assert result.ok
    assert "'&'" in result.stdout
    assert not injected_file.exists(), "Command injection successful! Security vulnerability found."

def test_metacharacters_stay_single_arguments(make_config):
    config = make_config({
        "name": "svc & del C:\\",
        "arguments": ["a; rm -rf /", "$(whoami)"],
    })
    steps = OperationPlanner().plan(RequestedAction.RECREATE, config)
    install = next(s for s in steps if s.action == LifecycleAction.INSTALL)
    assert install.commands[0][1] == "svc & del C:\\"
    assert install.commands[0][3:] == ("a; rm -rf /", "$(whoami)")

def test_password_is_redacted(make_config):
    config = make_config({"name": "svc", "account": {"user": "u", "password": "hunter2"}})
    steps = OperationPlanner().plan(RequestedAction.RECREATE, config)
    install = next(s for s in steps if s.action == LifecycleAction.INSTALL)
    object_name = install.commands[-1]

    assert object_name == ("set", "svc", "ObjectName", "u", "hunter2")
    assert "hunter2" not in NssmCommands.redact(object_name)
    assert NssmCommands.redact(install.commands[0]) == install.commands[0]

def test_password_not_echoed_on_failure(make_config, fake_nssm):
    config = make_config({"name": "svc", "account": {"user": "u", "password": "hunter2"}})
    install = LifecycleStep("svc", LifecycleAction.INSTALL,
                            (("set", "svc", "ObjectName", "u", "hunter2"),))
    outcome = NssmInvoker(config, runner=fake_nssm).run(install)
    assert not outcome.ok
    assert "hunter2" not in outcome.message
