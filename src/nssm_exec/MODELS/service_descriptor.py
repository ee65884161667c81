"""
Models for describing a Windows service managed through NSSM.
"""
import ntpath
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from enum import Enum

class StartupMode(str, Enum):
    """
    How the service control manager starts the service at boot.
    """
    AUTOMATIC = "automatic"
    MANUAL = "manual"
    DISABLED = "disabled"

    @property
    def nssm_value(self) -> str:
        """
        The value NSSM expects for its ``Start`` parameter.
        """
        return {
            StartupMode.AUTOMATIC: "SERVICE_AUTO_START",
            StartupMode.MANUAL: "SERVICE_DEMAND_START",
            StartupMode.DISABLED: "SERVICE_DISABLED",
        }[self]

class Account(BaseModel):
    """
    Windows account the service runs as.
    The password may be left empty for accounts that do not need one.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    user: str = Field(min_length=1)
    password: str = ""

class ServiceDescriptor(BaseModel):
    """
    The full description of a single service, after global defaults are merged in.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1)
    executable_path: str = Field(min_length=1)
    arguments: List[str] = []
    working_directory: Optional[str] = None

    # Metadata
    display_name: Optional[str] = None
    description: Optional[str] = None

    # Lifecycle
    startup_mode: StartupMode = StartupMode.AUTOMATIC
    dependencies: List[str] = []
    start_on_create: Optional[bool] = None
    account: Optional[Account] = None

    @field_validator("dependencies")
    @classmethod
    def _dedupe_dependencies(cls, value: List[str]) -> List[str]:
        seen = []
        for dep in value:
            if not dep:
                raise ValueError("dependency names must not be empty")
            if dep not in seen:
                seen.append(dep)
        return seen

    @property
    def effective_working_directory(self) -> Optional[str]:
        """
        The startup directory, falling back to the directory holding the executable.

        :return: A directory path, or None when the executable path has no directory part.
        """
        if self.working_directory:
            return self.working_directory
        return ntpath.dirname(self.executable_path) or None

    @property
    def should_start(self) -> bool:
        """
        Whether a recreate should start the service once it is installed.
        Disabled services are left stopped unless start_on_create says otherwise.
        """
        if self.start_on_create is not None:
            return self.start_on_create
        return self.startup_mode != StartupMode.DISABLED
