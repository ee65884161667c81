"""
Dependency resolution for services to determine install/start and stop/remove order.
"""
from typing import Dict, Iterator, List
from ..MODELS.errors import PlanError, PlanErrorKind
from ..MODELS.exec_config import ExecConfig

class DependencyResolver:
    """
    Resolves the startup and shutdown order of services based on their dependencies.
    """
    def resolve_order(self, config: ExecConfig) -> List[str]:
        """
        Determines the order to install and start services using a depth-first
        topological sort. Services are visited in declaration order, so services
        without dependency edges keep their declared order.

        :param config: The nssm-exec configuration.
        :return: Service names, every service after all services it depends on.
        :raises PlanError: If a circular dependency is detected.
        """
        services = config.service_map()
        dependencies: Dict[str, List[str]] = {
            # Only depend on services defined in the config
            name: [dep for dep in svc.dependencies if dep in services]
            for name, svc in services.items()
        }

        ordered: List[str] = []
        visited = set()

        for root in services:
            if root in visited:
                continue
            # explicit stack, chains can be deeper than the recursion limit
            path: List[str] = [root]
            pending: List[Iterator[str]] = [iter(dependencies[root])]
            while pending:
                dep = next(pending[-1], None)
                if dep is None:
                    pending.pop()
                    name = path.pop()
                    visited.add(name)
                    ordered.append(name)
                elif dep in path:
                    cycle = path[path.index(dep):]
                    raise PlanError(
                        PlanErrorKind.CYCLIC_DEPENDENCY,
                        f"Circular dependency detected: {' -> '.join(cycle + [dep])}",
                        services=cycle,
                    )
                elif dep not in visited:
                    path.append(dep)
                    pending.append(iter(dependencies[dep]))

        return ordered

    def resolve_shutdown_order(self, config: ExecConfig) -> List[str]:
        """
        :return: Service names with every dependent before the services it depends on.
        """
        return list(reversed(self.resolve_order(config)))
