"""Pydantic schemas for the agent loop.

- Plan은 Planner가 한 번 생성하고 이후 변경하지 않는다 (frozen)
- Step 상태 변경은 새 값을 만든다 (pending → in-progress → completed | failed)
- *Draft 모델은 LLM 출력 원본, 검증/정규화 전 형태
"""

from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class StepStatus(str, Enum):
    """Step 실행 상태."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"


_ALLOWED_TRANSITIONS: dict[StepStatus, set[StepStatus]] = {
    StepStatus.PENDING: {StepStatus.IN_PROGRESS},
    StepStatus.IN_PROGRESS: {StepStatus.COMPLETED, StepStatus.FAILED},
    StepStatus.COMPLETED: set(),
    StepStatus.FAILED: set(),
}

RETRY_SUFFIX = " (retry with fix)"


class PlanStep(BaseModel):
    """실행 계획의 단일 스텝 (도구 호출 1회).

    Attributes:
        id: plan 안에서 고유한 식별자
        description: 이 스텝이 수행하는 작업 설명
        tool: 실행할 도구 이름
        params: 도구가 해석하는 입력값
        dependencies: 참고용 선행 step id (실행 순서에는 사용하지 않음)
        status: 실행 상태
    """

    model_config = ConfigDict(frozen=True)

    id: str
    description: str
    tool: str
    params: dict[str, Any] = Field(default_factory=dict)
    dependencies: list[str] = Field(default_factory=list)
    status: StepStatus = StepStatus.PENDING

    def transition(self, status: StepStatus) -> "PlanStep":
        """상태가 바뀐 새 Step 반환.

        Raises:
            ValueError: 허용되지 않는 전이 (예: completed → in-progress)
        """
        if status not in _ALLOWED_TRANSITIONS[self.status]:
            raise ValueError(
                f"Invalid status transition for {self.id}: {self.status.value} -> {status.value}"
            )
        return self.model_copy(update={"status": status})

    def with_fix(self, params: dict[str, Any]) -> "PlanStep":
        """수정된 파라미터를 가진 재시도용 Step (같은 id)."""
        description = self.description
        if not description.endswith(RETRY_SUFFIX):
            description += RETRY_SUFFIX
        return self.model_copy(update={"params": params, "description": description})


class Plan(BaseModel):
    """실행 계획.

    Attributes:
        steps: 실행할 스텝 (순서대로 실행, 변경 불가 tuple)
        reasoning: 이 계획을 세운 이유
        estimated_steps: 스텝 수
    """

    model_config = ConfigDict(frozen=True)

    steps: tuple[PlanStep, ...]
    reasoning: str = ""
    estimated_steps: int = 0

    def get_step(self, step_id: str) -> PlanStep | None:
        return next((s for s in self.steps if s.id == step_id), None)


class StepDraft(BaseModel):
    """LLM이 작성한 스텝 (id 부여, 도구 검증 전)."""

    id: str | int | None = None
    description: str = ""
    tool: str
    # LLM이 다른 필드명을 사용할 수 있으므로 alias 추가
    params: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("params", "parameters", "args"),
    )
    dependencies: list[str | int] = Field(default_factory=list)


class PlanDraft(BaseModel):
    """LLM이 작성한 계획."""

    steps: list[StepDraft]
    reasoning: str = ""


class Remediation(BaseModel):
    """실패한 스텝에 대한 수정 제안.

    modified_params가 None이면 수정 불가로 판단한 것.
    """

    reasoning: str = ""
    modified_params: dict[str, Any] | None = Field(
        default=None,
        validation_alias=AliasChoices("modified_params", "modifiedParams"),
    )


class TaskStatus(str, Enum):
    """외부 저장 계층이 쓰는 작업 상태."""

    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


class TaskRecord(BaseModel):
    """Agent 실행 결과를 영속화용으로 투영한 레코드."""

    task_id: str
    status: TaskStatus
    plan: Plan | None = None
    result: dict[str, Any] | None = None
    error: str | None = None
    progress: float = 0.0
