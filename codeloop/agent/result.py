"""Agent run result and its TaskRecord projection."""

from dataclasses import asdict, dataclass, field
from typing import Any

from .context import CommandRecord, LogEntry
from .schemas import Plan, PlanStep, StepStatus, TaskRecord, TaskStatus
from .state import AgentStatus

_TASK_STATUS = {
    AgentStatus.PLANNING: TaskStatus.PENDING,
    AgentStatus.PREVIEWING: TaskStatus.PENDING,
    AgentStatus.EXECUTING: TaskStatus.EXECUTING,
    AgentStatus.COMPLETED: TaskStatus.COMPLETED,
    AgentStatus.FAILED: TaskStatus.FAILED,
}


@dataclass
class AgentResult:
    """Outcome of ``Agent.preview`` / ``Agent.apply``.

    ``plan`` is set only when the run stopped at the preview gate.
    """

    status: AgentStatus
    completed_steps: list[str] = field(default_factory=list)
    failed_steps: list[str] = field(default_factory=list)
    steps: list[PlanStep] = field(default_factory=list)
    logs: list[LogEntry] = field(default_factory=list)
    files_modified: list[str] = field(default_factory=list)
    commands_run: list[CommandRecord] = field(default_factory=list)
    plan: Plan | None = None
    error: str | None = None

    @property
    def current_step(self) -> int:
        return len(self.completed_steps) + len(self.failed_steps)

    @property
    def skipped_steps(self) -> list[str]:
        return [s.id for s in self.steps if s.status == StepStatus.PENDING]

    @property
    def progress(self) -> float:
        if not self.steps:
            return 100.0 if self.status == AgentStatus.COMPLETED else 0.0
        return round(100.0 * self.current_step / len(self.steps), 1)

    def to_task_record(self, task_id: str) -> TaskRecord:
        """외부 저장 계층용 TaskRecord로 투영."""
        result = None
        if self.status != AgentStatus.PREVIEWING:
            result = {
                "completed_steps": list(self.completed_steps),
                "failed_steps": list(self.failed_steps),
                "files_modified": list(self.files_modified),
                "commands_run": [asdict(record) for record in self.commands_run],
            }
        return TaskRecord(
            task_id=task_id,
            status=_TASK_STATUS[self.status],
            plan=self.plan,
            result=result,
            error=self.error,
            progress=self.progress,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "current_step": self.current_step,
            "completed_steps": list(self.completed_steps),
            "failed_steps": list(self.failed_steps),
            "steps": [s.model_dump(mode="json") for s in self.steps],
            "logs": [
                {**asdict(entry), "timestamp": entry.timestamp.isoformat()}
                for entry in self.logs
            ],
            "files_modified": list(self.files_modified),
            "commands_run": [asdict(record) for record in self.commands_run],
            "plan": self.plan.model_dump(mode="json") if self.plan else None,
            "error": self.error,
        }
