"""
Shared fixtures: an in-memory NSSM stand-in used through the ProcessRunner seam.
"""
from typing import Dict, List, Tuple

import pytest

from nssm_exec.MODELS.exec_config import ExecConfig
from nssm_exec.RUNNERS.process_runner import CommandResult

NOT_INSTALLED = "OpenService(): The specified service does not exist as an installed service."


class FakeNssm:
    """
    Mimics the NSSM command line: keeps a registry of services and answers
    install/set/start/stop/remove/status with NSSM-like exit codes and text.
    """

    def __init__(self):
        self.services: Dict[str, str] = {}
        self.params: Dict[str, Dict[str, Tuple[str, ...]]] = {}
        self.calls: List[Tuple[str, ...]] = []
        self._failures: Dict[Tuple[str, str], Tuple[int, str]] = {}
        self._stuck: Dict[str, int] = {}

    def fail(self, verb: str, name: str, exit_code: int = 1, output: str = "Access is denied."):
        """Makes the next ``verb name`` call fail with the given exit code and text."""
        self._failures[(verb, name)] = (exit_code, output)

    def stop_pending(self, name: str, polls: int):
        """Makes ``stop name`` report STOP_PENDING for the given number of status polls."""
        self._stuck[name] = polls

    def install_running(self, *names: str):
        for name in names:
            self.services[name] = "SERVICE_RUNNING"

    def verbs(self) -> List[Tuple[str, str]]:
        """Calls other than status and set, as (verb, service) pairs."""
        return [(c[0], c[1]) for c in self.calls if c[0] not in ("status", "set")]

    def run(self, args) -> CommandResult:
        args = tuple(args)
        self.calls.append(args)
        verb, name = args[0], args[1]

        if (verb, name) in self._failures:
            code, output = self._failures.pop((verb, name))
            return self._result(args, code, stderr=output)

        handler = getattr(self, f"_{verb}")
        return handler(args, name)

    @staticmethod
    def _result(args, exit_code: int, stdout: str = "", stderr: str = "") -> CommandResult:
        return CommandResult(args=args, exit_code=exit_code, stdout=stdout, stderr=stderr)

    def _install(self, args, name):
        if name in self.services:
            return self._result(args, 5, stderr="Error creating service!\n"
                                                "CreateService(): The specified service already exists.")
        self.services[name] = "SERVICE_STOPPED"
        self.params[name] = {"Application": args[2:3], "AppParameters": args[3:]}
        return self._result(args, 0, stdout=f'Service "{name}" installed successfully!')

    def _set(self, args, name):
        if name not in self.services:
            return self._result(args, 3, stderr=NOT_INSTALLED)
        self.params[name][args[2]] = args[3:]
        return self._result(args, 0, stdout=f"Set parameter \"{args[2]}\" for service \"{name}\".")

    def _start(self, args, name):
        if name not in self.services:
            return self._result(args, 3, stderr=NOT_INSTALLED)
        if self.services[name] == "SERVICE_RUNNING":
            return self._result(args, 1, stderr=f"{name}: Unexpected status SERVICE_RUNNING in response to START control.")
        self.services[name] = "SERVICE_RUNNING"
        return self._result(args, 0, stdout=f"{name}: START: The operation completed successfully.")

    def _stop(self, args, name):
        if name not in self.services:
            return self._result(args, 3, stderr=NOT_INSTALLED)
        if self.services[name] == "SERVICE_STOPPED":
            return self._result(args, 1, stderr=f"{name}: Unexpected status SERVICE_STOPPED in response to STOP control.")
        if self._stuck.get(name):
            self.services[name] = "SERVICE_STOP_PENDING"
            return self._result(args, 1, stderr=f"{name}: Unexpected status SERVICE_STOP_PENDING in response to STOP control.")
        self.services[name] = "SERVICE_STOPPED"
        return self._result(args, 0, stdout=f"{name}: STOP: The operation completed successfully.")

    def _remove(self, args, name):
        if name not in self.services:
            return self._result(args, 3, stderr="Can't open service!\n" + NOT_INSTALLED)
        del self.services[name]
        self.params.pop(name, None)
        return self._result(args, 0, stdout=f'Service "{name}" removed successfully!')

    def _status(self, args, name):
        if name not in self.services:
            return self._result(args, 3, stderr="Can't open service!\n" + NOT_INSTALLED)
        if self._stuck.get(name):
            self._stuck[name] -= 1
            if not self._stuck[name]:
                self.services[name] = "SERVICE_STOPPED"
            return self._result(args, 0, stdout="SERVICE_STOP_PENDING")
        return self._result(args, 0, stdout=self.services[name])


@pytest.fixture
def fake_nssm():
    return FakeNssm()


@pytest.fixture
def make_config():
    """Builds an ExecConfig from service mappings, with instant status polls."""
    def _make(*services: dict, **overrides) -> ExecConfig:
        data = {
            "manager_path": "nssm",
            "pending_stop_poll_ms": 0,
            "pending_start_poll_ms": 0,
            "services": [
                {"executable_path": "C:\\svc\\" + svc["name"] + ".exe", **svc} for svc in services
            ],
        }
        data.update(overrides)
        return ExecConfig.model_validate(data)
    return _make
