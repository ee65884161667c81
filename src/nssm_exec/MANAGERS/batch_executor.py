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
Sequential execution of planned lifecycle steps with per-service failure isolation.
"""
import logging
from typing import Sequence, Set
from ..MODELS.errors import InvocationError
from ..MODELS.lifecycle import BatchReport, LifecycleStep, StepOutcome
from .nssm_invoker import StepInvoker

logger = logging.getLogger(__name__)

class BatchExecutor:
    """
    Drives a plan through a step invoker, one step at a time.
    """
    def __init__(self, invoker: StepInvoker):
        """
        Initializes the executor.

        :param invoker: Carries out individual steps.
        """
        self.invoker = invoker

    def execute(self, steps: Sequence[LifecycleStep]) -> BatchReport:
        """
        Runs every step in order and records one outcome per step.

        A failed step marks the remaining steps of the same service as skipped;
        other services carry on. An InvocationError aborts the batch and marks
        everything not yet done as skipped.

        :param steps: Steps in execution order.
        :return: The closed report.
        """
        report = BatchReport()
        failed: Set[str] = set()

        for index, step in enumerate(steps):
            if step.service_name in failed:
                logger.info("[%s] Skipping %s after earlier failure", step.service_name, step.action.value)
                report.record(step, StepOutcome.skipped("earlier step for this service failed"))
                continue

            logger.info("[%s] Running %s...", step.service_name, step.action.value)
            try:
                outcome = self.invoker.run(step)
            except InvocationError as e:
                logger.error("[%s] %s aborted the batch: %s", step.service_name, step.action.value, e)
                report.abort(str(e))
                for remaining in steps[index:]:
                    report.record(remaining, StepOutcome.skipped("batch aborted"))
                break

            report.record(step, outcome)
            if outcome.ok:
                logger.info("[%s] %s [OK]", step.service_name, step.action.value)
            else:
                failed.add(step.service_name)
                logger.error("[%s] %s [FAILED] %s", step.service_name, step.action.value, outcome.message)
                if outcome.output:
                    logger.error("[%s] > %s", step.service_name, outcome.output)

        return report.close()
