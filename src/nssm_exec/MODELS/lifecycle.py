"""
Value types for planned lifecycle steps, their outcomes and the batch report.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class RequestedAction(str, Enum):
    """High-level action requested by the operator."""

    RECREATE = "recreate"
    STOP = "stop"


class LifecycleAction(str, Enum):
    """One atomic operation against the service manager."""

    STOP = "stop"
    REMOVE = "remove"
    INSTALL = "install"
    START = "start"


@dataclass(frozen=True)
class LifecycleStep:
    """
    One lifecycle action targeted at one service.

    ``commands`` holds every manager invocation the step needs, each one an
    argument tuple without the manager path itself. Install steps carry the
    ``install`` call followed by its ``set`` calls.
    """

    service_name: str
    action: LifecycleAction
    commands: Tuple[Tuple[str, ...], ...] = ()

    def __str__(self) -> str:
        return f"{self.action.value}({self.service_name})"


class StepStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class StepOutcome:
    """Result of attempting, or not attempting, a single step."""

    status: StepStatus
    idempotent: bool = False  # succeeded because the target state was already reached
    exit_code: Optional[int] = None
    output: str = ""
    message: str = ""

    @classmethod
    def success(cls, idempotent: bool = False, message: str = "") -> "StepOutcome":
        return cls(StepStatus.SUCCESS, idempotent=idempotent, message=message)

    @classmethod
    def failure(cls, message: str, exit_code: Optional[int] = None, output: str = "") -> "StepOutcome":
        return cls(StepStatus.FAILURE, exit_code=exit_code, output=output, message=message)

    @classmethod
    def skipped(cls, message: str = "") -> "StepOutcome":
        return cls(StepStatus.SKIPPED, message=message)

    @property
    def ok(self) -> bool:
        return self.status == StepStatus.SUCCESS


@dataclass(frozen=True)
class StepRecord:
    step: LifecycleStep
    outcome: StepOutcome


@dataclass
class BatchReport:
    """
    Outcomes of every planned step, in execution order.

    Filled in by the batch executor and closed once the batch ends;
    recording into a closed report raises RuntimeError.
    """

    records: List[StepRecord] = field(default_factory=list)
    aborted: Optional[str] = None
    _closed: bool = field(default=False, repr=False)

    def record(self, step: LifecycleStep, outcome: StepOutcome):
        if self._closed:
            raise RuntimeError("Cannot record into a closed batch report")
        self.records.append(StepRecord(step, outcome))

    def abort(self, reason: str):
        if self._closed:
            raise RuntimeError("Cannot abort a closed batch report")
        self.aborted = reason

    def close(self) -> "BatchReport":
        self._closed = True
        return self

    @property
    def closed(self) -> bool:
        return self._closed

    def by_service(self) -> Dict[str, List[StepRecord]]:
        """
        Groups records by service name.

        :return: Records per service, services in order of first appearance.
        """
        grouped: Dict[str, List[StepRecord]] = {}
        for rec in self.records:
            grouped.setdefault(rec.step.service_name, []).append(rec)
        return grouped

    def outcome_of(self, service_name: str, action: LifecycleAction) -> Optional[StepOutcome]:
        for rec in self.records:
            if rec.step.service_name == service_name and rec.step.action == action:
                return rec.outcome
        return None

    def count(self, status: StepStatus) -> int:
        return sum(1 for rec in self.records if rec.outcome.status == status)
