"""
Error taxonomy for configuration, planning and manager invocation.
"""
from enum import Enum
from typing import Iterable, List, Optional


class NssmExecError(Exception):
    """
    Base class for all errors raised by nssm-exec.
    """
    def __init__(self, kind: Enum, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class ConfigErrorKind(str, Enum):
    MALFORMED_SYNTAX = "malformed_syntax"
    MISSING_FIELD = "missing_field"
    DUPLICATE_NAME = "duplicate_name"
    INVALID_VALUE = "invalid_value"
    UNDEFINED_VARIABLE = "undefined_variable"
    UNREADABLE = "unreadable"


class ConfigError(NssmExecError):
    """
    Raised when a configuration source cannot be turned into an ExecConfig.
    """
    def __init__(self, kind: ConfigErrorKind, message: str, location: Optional[str] = None):
        if location:
            message = f"{location}: {message}"
        super().__init__(kind, message)
        self.location = location


class PlanErrorKind(str, Enum):
    CYCLIC_DEPENDENCY = "cyclic_dependency"


class PlanError(NssmExecError):
    """
    Raised when the services cannot be put into a dependency order.
    """
    def __init__(self, kind: PlanErrorKind, message: str, services: Iterable[str] = ()):
        super().__init__(kind, message)
        self.services: List[str] = list(services)


class InvocationErrorKind(str, Enum):
    MANAGER_NOT_FOUND = "manager_not_found"
    SPAWN_FAILED = "spawn_failed"


class InvocationError(NssmExecError):
    """
    Raised when the service manager executable cannot be run at all.
    Aborts the rest of the batch.
    """
    def __init__(self, kind: InvocationErrorKind, message: str, manager_path: Optional[str] = None):
        super().__init__(kind, message)
        self.manager_path = manager_path


class StepFailureKind(str, Enum):
    NON_ZERO_EXIT = "non_zero_exit"
    STATE_NOT_REACHED = "state_not_reached"


class StepFailure(NssmExecError):
    """
    A single lifecycle step that the manager rejected.

    Never propagated past the batch executor; it is converted into a
    failed StepOutcome and shows up only in the report.
    """
    def __init__(self,
                 kind: StepFailureKind,
                 message: str,
                 exit_code: Optional[int] = None,
                 output: str = ""):
        super().__init__(kind, message)
        self.exit_code = exit_code
        self.output = output
