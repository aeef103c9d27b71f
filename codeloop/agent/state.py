"""Agent graph state definition.

- plan은 실행 중 변경하지 않는다 (상태 추적은 steps 복사본으로)
- 상태는 사실(fact)만 담는다
"""

from enum import Enum
from typing import TypedDict

from codeloop.tools import ExecutionResult
from .context import ExecutionContext
from .schemas import Plan, PlanStep


class AgentStatus(str, Enum):
    """Agent 실행 단계."""

    PLANNING = "planning"
    PREVIEWING = "previewing"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


class AgentState(TypedDict):
    """Planning → (Previewing | Executing) → (Completed | Failed) 상태.

    Attributes:
        goal: 사용자 목표 원문
        context: 실행 컨텍스트 (로그, 변경 파일, 명령 기록)
        related_context: Planner 프롬프트에 덧붙일 참고 문자열
        preview: True면 계획만 만들고 멈춤 (승인 게이트)
        plan: Planner가 만든 계획 (apply 시 주입)
        steps: 상태가 반영된 step 복사본
        cursor: 다음에 실행할 step 인덱스
        current: 실행 중인 step
        last_result: 가장 최근 실행/재시도 결과
        retry_allowed: last_result 실패 시 재시도 가능 여부
        completed_steps: 성공한 step id
        failed_steps: 실패한 step id
        error: 실행 중단 사유 (있으면 종료)
        status: 현재 단계
    """

    # 입력
    goal: str
    context: ExecutionContext
    related_context: list[str]
    preview: bool

    # 계획
    plan: Plan | None
    steps: list[PlanStep]

    # 실행
    cursor: int
    current: PlanStep | None
    last_result: ExecutionResult | None
    retry_allowed: bool

    # 결과
    completed_steps: list[str]
    failed_steps: list[str]

    # 제어
    error: str | None
    status: AgentStatus
