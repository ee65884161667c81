# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Execution of the service manager executable with captured output.
"""
import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence

from ..MODELS.errors import InvocationError, InvocationErrorKind
from .nssm_commands import NssmCommands

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Exit status and decoded output of one manager call."""

    args: tuple
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        """Stdout and stderr joined, whichever are non-empty."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


def decode_output(raw: Optional[bytes]) -> str:
    """
    Decodes manager output. NSSM writes UTF-16 text, so NUL bytes are dropped
    before decoding.

    :param raw: Bytes captured from the process.
    :return: The stripped text.
    """
    if not raw:
        return ""
    return raw.replace(b"\x00", b"").decode("utf-8", errors="replace").strip()


class ProcessRunner:
    """
    Runs the service manager executable, one blocking call at a time.
    """
    def __init__(self, manager_path: str, name: str = "nssm"):
        """
        Initializes the process runner.

        Args:
            manager_path (str): Path or command name of the manager executable.
            name (str): Identifier used in log messages.
        """
        self.manager_path = manager_path
        self.name = name
        self._resolved: Optional[str] = None

    def resolve(self) -> str:
        """
        Locates the manager executable. Bare command names are looked up on PATH,
        anything with a directory part must exist as a file.

        Returns:
            str: The absolute path of the executable.

        Raises:
            InvocationError: If the executable cannot be found.
        """
        if self._resolved:
            return self._resolved

        path = self.manager_path
        if os.path.dirname(path):
            found = os.path.abspath(path) if os.path.isfile(path) else None
        else:
            found = shutil.which(path)

        if not found:
            raise InvocationError(InvocationErrorKind.MANAGER_NOT_FOUND,
                                  f"Service manager executable '{path}' not found",
                                  manager_path=path)
        self._resolved = found
        return found

    def run(self, args: Sequence[str]) -> CommandResult:
        """
        Runs the manager with the given arguments and waits for it to exit.

        Args:
            args (Sequence[str]): Arguments after the executable path.

        Returns:
            CommandResult: Exit code and decoded output.

        Raises:
            InvocationError: If the executable is missing or cannot be spawned.
        """
        executable = self.resolve()
        command = [executable, *args]
        shown = [executable, *NssmCommands.redact(tuple(args))]
        logger.debug("[%s] %s", self.name, subprocess.list2cmdline(shown))

        try:
            # Avoid shell=True for security reasons (CWE-78)
            completed = subprocess.run(command, capture_output=True, shell=False)
        except FileNotFoundError as e:
            raise InvocationError(InvocationErrorKind.MANAGER_NOT_FOUND,
                                  f"Service manager executable '{executable}' not found: {e}",
                                  manager_path=executable) from e
        except OSError as e:
            raise InvocationError(InvocationErrorKind.SPAWN_FAILED,
                                  f"Unable to run '{executable}': {e}",
                                  manager_path=executable) from e

        result = CommandResult(
            args=tuple(args),
            exit_code=completed.returncode,
            stdout=decode_output(completed.stdout),
            stderr=decode_output(completed.stderr),
        )
        if not result.ok:
            logger.debug("[%s] exit code %s: %s", self.name, result.exit_code, result.output)
        return result
