"""
Planning of ordered lifecycle steps for a requested action.
"""
import logging
from typing import List, Optional, Tuple
from ..MODELS.exec_config import ExecConfig
from ..MODELS.lifecycle import LifecycleAction, LifecycleStep, RequestedAction
from ..MODELS.service_descriptor import ServiceDescriptor
from ..RUNNERS.dependency_resolver import DependencyResolver
from ..RUNNERS.nssm_commands import NssmCommands

logger = logging.getLogger(__name__)

class OperationPlanner:
    """
    Turns a requested action and a configuration into an ordered list of steps.

    Stop and remove steps run dependents first; install and start steps run
    dependencies first. A recreate runs every stop, then every remove, then
    every install, then every start.
    """
    def __init__(self, resolver: Optional[DependencyResolver] = None):
        self.resolver = resolver or DependencyResolver()

    def plan(self, action: RequestedAction, config: ExecConfig) -> Tuple[LifecycleStep, ...]:
        """
        :param action: The requested high-level action.
        :param config: The validated configuration.
        :return: Steps in execution order.
        :raises PlanError: If the dependencies contain a cycle.
        """
        forward = self.resolver.resolve_order(config)
        backward = list(reversed(forward))
        services = config.service_map()

        steps: List[LifecycleStep] = []
        if action == RequestedAction.STOP:
            steps += [self._step(services[name], LifecycleAction.STOP) for name in backward]
        elif action == RequestedAction.RECREATE:
            steps += [self._step(services[name], LifecycleAction.STOP) for name in backward]
            steps += [self._step(services[name], LifecycleAction.REMOVE) for name in backward]
            steps += [self._step(services[name], LifecycleAction.INSTALL) for name in forward]
            steps += [self._step(services[name], LifecycleAction.START)
                      for name in forward if services[name].should_start]
        else:
            raise ValueError(f"Unknown action: {action!r}")

        logger.debug("Planned %s: %s", action.value, ", ".join(str(s) for s in steps))
        return tuple(steps)

    @staticmethod
    def _step(svc: ServiceDescriptor, action: LifecycleAction) -> LifecycleStep:
        if action == LifecycleAction.INSTALL:
            commands = NssmCommands.install(svc)
        elif action == LifecycleAction.START:
            commands = [NssmCommands.start(svc.name)]
        elif action == LifecycleAction.STOP:
            commands = [NssmCommands.stop(svc.name)]
        else:
            commands = [NssmCommands.remove(svc.name)]
        return LifecycleStep(svc.name, action, tuple(commands))
