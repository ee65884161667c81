"""
Execution of single lifecycle steps against NSSM, with result classification.
"""
import logging
import time
from enum import Enum
from typing import Callable, Dict, FrozenSet, Optional, Protocol, Tuple

from tenacity import Retrying, retry_if_result, stop_after_attempt, wait_fixed

from ..MODELS.errors import StepFailure, StepFailureKind
from ..MODELS.exec_config import ExecConfig
from ..MODELS.lifecycle import LifecycleAction, LifecycleStep, StepOutcome
from ..RUNNERS.nssm_commands import NssmCommands
from ..RUNNERS.process_runner import CommandResult, ProcessRunner

logger = logging.getLogger(__name__)

MAX_OUTPUT_CHARS = 500

NOT_INSTALLED_PATTERN = "does not exist as an installed service"

# Non-zero exits meaning the service is already where the step wants it.
# Matched case-insensitively against stdout and stderr.
BENIGN_PATTERNS: Dict[LifecycleAction, Tuple[str, ...]] = {
    LifecycleAction.STOP: (
        "service_stopped in response to stop control",
        "has not been started",
        NOT_INSTALLED_PATTERN,
    ),
    LifecycleAction.REMOVE: (
        NOT_INSTALLED_PATTERN,
        "marked for deletion",
    ),
}

# Non-zero exits accepted only when the following state poll succeeds
TRANSITIONAL_PATTERNS: Dict[LifecycleAction, Tuple[str, ...]] = {
    LifecycleAction.STOP: ("service_stop_pending in response to stop control",),
}


class ServiceState(str, Enum):
    """States reported by ``nssm status``."""

    CONTINUE_PENDING = "SERVICE_CONTINUE_PENDING"
    PAUSE_PENDING = "SERVICE_PAUSE_PENDING"
    PAUSED = "SERVICE_PAUSED"
    RUNNING = "SERVICE_RUNNING"
    START_PENDING = "SERVICE_START_PENDING"
    STOP_PENDING = "SERVICE_STOP_PENDING"
    STOPPED = "SERVICE_STOPPED"
    NOT_INSTALLED = "NOT_INSTALLED"


class StepInvoker(Protocol):
    """Anything that can carry out one lifecycle step."""

    def run(self, step: LifecycleStep) -> StepOutcome:
        ...


def truncate(text: str, limit: int = MAX_OUTPUT_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


class NssmInvoker:
    """
    Runs lifecycle steps through the NSSM executable.

    Stop and start steps are followed by a bounded ``nssm status`` poll until the
    service reports the expected state.
    """

    def __init__(self,
                 config: ExecConfig,
                 runner: Optional[ProcessRunner] = None,
                 sleep: Callable[[float], None] = time.sleep):
        """
        :param config: Supplies the manager path and the poll settings.
        :param runner: Process runner to use, built from the manager path if omitted.
        :param sleep: Sleep function used between status polls.
        """
        self.runner = runner or ProcessRunner(config.manager_path)
        self._sleep = sleep
        self._polls: Dict[LifecycleAction, Tuple[FrozenSet[ServiceState], int, int]] = {
            LifecycleAction.STOP: (
                frozenset({ServiceState.STOPPED, ServiceState.NOT_INSTALLED}),
                config.pending_stop_poll_ms,
                config.pending_stop_poll_count,
            ),
            LifecycleAction.START: (
                frozenset({ServiceState.RUNNING}),
                config.pending_start_poll_ms,
                config.pending_start_poll_count,
            ),
        }

    def run(self, step: LifecycleStep) -> StepOutcome:
        """
        Runs every command of the step in order and classifies the result.

        :param step: The step to execute.
        :return: Success (possibly idempotent) or failure with the captured cause.
        :raises InvocationError: If the manager cannot be run at all.
        """
        try:
            idempotent, pending = self._run_commands(step)
            self._wait_for_target_state(step, pending)
        except StepFailure as failure:
            return StepOutcome.failure(failure.message, exit_code=failure.exit_code,
                                       output=failure.output)
        return StepOutcome.success(
            idempotent=idempotent,
            message="already in target state" if idempotent else "",
        )

    def _run_commands(self, step: LifecycleStep) -> Tuple[bool, bool]:
        idempotent = pending = False
        for args in step.commands:
            result = self.runner.run(args)
            if result.ok:
                continue
            if self._matches(BENIGN_PATTERNS, step.action, result):
                logger.info("[%s] %s: already in target state", step.service_name, step.action.value)
                idempotent = True
                continue
            if self._matches(TRANSITIONAL_PATTERNS, step.action, result):
                logger.warning("[%s] %s returned '%s', waiting for the service",
                               step.service_name, step.action.value, result.output)
                pending = True
                continue
            raise StepFailure(
                StepFailureKind.NON_ZERO_EXIT,
                f"'{' '.join(NssmCommands.redact(args))}' exited with code {result.exit_code}",
                exit_code=result.exit_code,
                output=truncate(result.output),
            )
        return idempotent, pending

    @staticmethod
    def _matches(patterns: Dict[LifecycleAction, Tuple[str, ...]],
                 action: LifecycleAction,
                 result: CommandResult) -> bool:
        output = result.output.lower()
        return any(pattern in output for pattern in patterns.get(action, ()))

    def _wait_for_target_state(self, step: LifecycleStep, pending: bool = False):
        if step.action not in self._polls:
            return
        accepted, interval_ms, count = self._polls[step.action]
        if count <= 0:
            if pending:
                # nothing will confirm the transition
                raise StepFailure(
                    StepFailureKind.STATE_NOT_REACHED,
                    f"{step.action.value} is still pending and state polling is disabled",
                )
            return

        state = self.wait_for_state(step.service_name, accepted, interval_ms, count)
        if state not in accepted:
            expected = " or ".join(sorted(s.value for s in accepted))
            raise StepFailure(
                StepFailureKind.STATE_NOT_REACHED,
                f"service did not reach {expected} "
                f"(last state: {state.value if state else 'unknown'})",
            )

    def wait_for_state(self,
                       name: str,
                       accepted: FrozenSet[ServiceState],
                       interval_ms: int,
                       count: int) -> Optional[ServiceState]:
        """
        Polls ``nssm status`` until the service is in one of the accepted states.

        :param name: Service name.
        :param accepted: States that end the poll.
        :param interval_ms: Delay between polls.
        :param count: Maximum number of status calls.
        :return: The last observed state, None if it could not be determined.
        """
        def log_wait(retry_state):
            logger.info("[%s] still not in state %s, waiting...",
                        name, "/".join(sorted(s.value for s in accepted)))

        retrying = Retrying(
            stop=stop_after_attempt(count),
            wait=wait_fixed(interval_ms / 1000.0),
            retry=retry_if_result(lambda state: state not in accepted),
            retry_error_callback=lambda retry_state: retry_state.outcome.result(),
            before_sleep=log_wait,
            sleep=self._sleep,
        )
        return retrying(self.query_state, name)

    def query_state(self, name: str) -> Optional[ServiceState]:
        """
        :param name: Service name.
        :return: The reported state, NOT_INSTALLED if NSSM does not know the
                 service, or None if the answer is not recognised.
        """
        result = self.runner.run(NssmCommands.status(name))
        if not result.ok:
            if NOT_INSTALLED_PATTERN in result.output.lower():
                return ServiceState.NOT_INSTALLED
            return None
        try:
            return ServiceState(result.stdout.strip())
        except ValueError:
            logger.debug("[%s] unrecognised status %r", name, result.stdout)
            return None
