"""
Reduction of a batch report to an exit code and a readable summary.
"""
from jinja2 import Environment
from ..MODELS.lifecycle import BatchReport, StepOutcome, StepStatus

EXIT_OK = 0
EXIT_FAILED = 1

SUMMARY_TEMPLATE = """\
{% for name, records in services.items() %}
{{ name }}
{% for rec in records %}
  {{ "%-8s"|format(rec.step.action.value) }} {{ rec.outcome|describe }}
{% endfor %}
{% endfor %}
{% if aborted %}
Batch aborted: {{ aborted }}
{% endif %}
{{ succeeded }} succeeded, {{ failed }} failed, {{ skipped }} skipped
"""


def describe(outcome: StepOutcome) -> str:
    if outcome.status == StepStatus.SUCCESS:
        return "ok (already in target state)" if outcome.idempotent else "ok"
    if outcome.status == StepStatus.SKIPPED:
        return f"skipped ({outcome.message})" if outcome.message else "skipped"

    text = "FAILED"
    if outcome.exit_code is not None:
        text += f" (exit {outcome.exit_code})"
    if outcome.message:
        text += f": {outcome.message}"
    if outcome.output:
        text += f" | {' '.join(outcome.output.split())}"
    return text


class ReportMapper:
    """
    Maps a completed BatchReport to the process exit status and summary text.
    """

    def __init__(self):
        env = Environment(trim_blocks=True, lstrip_blocks=True, keep_trailing_newline=True)
        env.filters["describe"] = describe
        self.template = env.from_string(SUMMARY_TEMPLATE)

    def exit_code(self, report: BatchReport) -> int:
        """
        :return: 0 if every step succeeded, 1 if anything failed or was skipped.
        """
        if report.aborted or any(not rec.outcome.ok for rec in report.records):
            return EXIT_FAILED
        return EXIT_OK

    def summary(self, report: BatchReport) -> str:
        """
        :return: Per-service listing of every step and how it ended.
        """
        return self.template.render(
            services=report.by_service(),
            aborted=report.aborted,
            succeeded=report.count(StepStatus.SUCCESS),
            failed=report.count(StepStatus.FAILURE),
            skipped=report.count(StepStatus.SKIPPED),
        )
