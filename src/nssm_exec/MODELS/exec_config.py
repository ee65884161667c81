"""
Models for the overall nssm-exec configuration.
"""
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_core import PydanticCustomError
from .service_descriptor import Account, ServiceDescriptor, StartupMode

PENDING_POLL_DEFAULT_MS = 500
PENDING_POLL_DEFAULT_COUNT = 5

class GlobalDefaults(BaseModel):
    """
    Settings applied to every service that does not set them itself.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    dependencies: Optional[List[str]] = None
    startup_mode: Optional[StartupMode] = None
    start_on_create: Optional[bool] = None
    account: Optional[Account] = None

class ExecConfig(BaseModel):
    """
    Complete configuration for one run.
    Equivalent to a parsed nssm_exec.yml file.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    manager_path: str = Field(default="nssm", min_length=1)

    pending_stop_poll_ms: int = Field(default=PENDING_POLL_DEFAULT_MS, ge=0)
    pending_stop_poll_count: int = Field(default=PENDING_POLL_DEFAULT_COUNT, ge=0)
    pending_start_poll_ms: int = Field(default=PENDING_POLL_DEFAULT_MS, ge=0)
    pending_start_poll_count: int = Field(default=PENDING_POLL_DEFAULT_COUNT, ge=0)

    defaults: GlobalDefaults = Field(default_factory=GlobalDefaults)
    services: List[ServiceDescriptor] = []

    @model_validator(mode="after")
    def _check_unique_names(self) -> "ExecConfig":
        seen = set()
        for svc in self.services:
            if svc.name in seen:
                raise PydanticCustomError(
                    "duplicate_service_name",
                    "service name '{name}' is declared more than once",
                    {"name": svc.name},
                )
            seen.add(svc.name)
        return self

    def service_map(self) -> Dict[str, ServiceDescriptor]:
        """
        :return: Services keyed by name, in declaration order.
        """
        return {svc.name: svc for svc in self.services}

    def with_manager_path(self, manager_path: str) -> "ExecConfig":
        """
        Returns a copy that invokes a different manager executable.

        :param manager_path: Path or command name of the NSSM executable.
        """
        return self.model_copy(update={"manager_path": manager_path})
