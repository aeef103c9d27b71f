"""Agent orchestrator.

Planner → (Preview gate) → Executor/StepIterator loop. One Agent is one
isolated run: it owns its Planner, Executor, StepIterator and the
ExecutionContext of each call.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field

from codeloop.config import Settings, settings
from codeloop.errors import AgentError, PlanningError
from codeloop.llm import CompletionClient, LLMClient
from codeloop.tools import default_tools
from .context import ExecutionContext
from .executor import Executor
from .graph import build_agent_graph
from .iterator import StepIterator
from .planner import Planner
from .result import AgentResult
from .schemas import Plan, StepStatus
from .state import AgentState, AgentStatus

logger = logging.getLogger(__name__)


def generate_task_id() -> str:
    return f"task-{uuid.uuid4()}"


@dataclass
class AgentConfig:
    """Per-run agent configuration."""

    task_id: str = field(default_factory=generate_task_id)
    model: str | None = None
    autonomous: bool = False
    max_iterations: int = field(default_factory=lambda: settings.max_iterations)
    preview_mode: bool = False
    working_directory: str = field(default_factory=lambda: settings.working_directory)


class Agent:
    """Goal → plan → (approval) → sequential tool execution."""

    def __init__(
        self,
        planner: Planner,
        executor: Executor,
        iterator: StepIterator,
        config: AgentConfig | None = None,
        cancel_event: threading.Event | None = None,
    ):
        self.planner = planner
        self.executor = executor
        self.iterator = iterator
        self.config = config or AgentConfig()
        self.cancel_event = cancel_event
        self._plans: dict[str, Plan] = {}
        self._applied = False
        self._graph = build_agent_graph(self)

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    def execute(self, goal: str, related_context: list[str] | None = None) -> AgentResult:
        """preview_mode면 계획만 반환, 아니면 계획 후 바로 실행."""
        if self.config.preview_mode:
            return self.preview(goal, related_context=related_context)
        return self.apply(goal, related_context=related_context)

    def preview(self, goal: str, related_context: list[str] | None = None) -> AgentResult:
        """계획만 생성하고 반환 (도구 실행 없음).

        같은 goal로 다시 호출하면 이미 만든 Plan 객체를 그대로 반환한다.

        Raises:
            AgentError: 계획 생성 실패
        """
        context = self._new_context(goal)
        cached = self._plans.get(goal)
        if cached is not None:
            context.add_log("info", "Preview mode: returning the existing plan")
            return self._preview_result(cached, context)

        final = self._run(goal, context, plan=None, preview=True, related_context=related_context)
        if final.get("error"):
            self._raise(final, context)

        plan = final["plan"]
        self._plans[goal] = plan
        return self._preview_result(plan, context)

    def apply(
        self,
        goal: str,
        plan: Plan | None = None,
        related_context: list[str] | None = None,
    ) -> AgentResult:
        """계획을 실행.

        Args:
            goal: 사용자 목표
            plan: 실행할 계획. 없으면 preview로 만든 계획, 그것도 없으면 새로 계획
            related_context: 새로 계획할 때 쓸 참고 문자열

        Raises:
            AgentError: 계획 실패, pending이 아닌 step이 있는 plan, 비자율 모드의
                step 실패, 반복 한도 초과, 취소, 같은 Agent로 두 번 실행
        """
        if self._applied:
            raise AgentError("This agent has already applied a plan; create a new Agent for another run")

        if plan is None:
            plan = self._plans.get(goal)
        else:
            # 이미 실행된 step이 섞인 plan은 거부
            not_pending = [s.id for s in plan.steps if s.status != StepStatus.PENDING]
            if not_pending:
                raise AgentError(f"Plan contains steps that are not pending: {', '.join(not_pending)}")
        self._applied = True

        context = self._new_context(goal)
        final = self._run(goal, context, plan=plan, preview=False, related_context=related_context)
        if final.get("error"):
            self._raise(final, context)

        return self._result(final, context)

    # ------------------------------------------------------------------
    # Graph nodes
    # ------------------------------------------------------------------

    def plan_node(self, state: AgentState) -> dict:
        context = state["context"]
        context.add_log("info", "Phase 1: Planning")
        try:
            plan = self.planner.create_plan(
                state["goal"],
                context,
                related_context=state["related_context"],
            )
        except PlanningError as e:
            return {"error": str(e), "status": AgentStatus.FAILED}

        if state["preview"]:
            context.add_log("info", "Preview mode: returning plan without execution")
            return {"plan": plan, "steps": list(plan.steps), "status": AgentStatus.PREVIEWING}

        return {"plan": plan, "steps": list(plan.steps), "status": AgentStatus.EXECUTING}

    def execute_node(self, state: AgentState) -> dict:
        context = state["context"]
        cursor = state["cursor"]
        steps = list(state["steps"])

        # 취소 신호는 step 사이에서만 확인
        if self.cancel_event is not None and self.cancel_event.is_set():
            return {"error": f"Run cancelled before step {cursor + 1}", "status": AgentStatus.FAILED}

        # 비정상적으로 긴 plan 방지
        if cursor >= self.config.max_iterations:
            return {
                "error": f"Maximum iterations ({self.config.max_iterations}) exceeded",
                "status": AgentStatus.FAILED,
            }

        if cursor == 0:
            context.add_log("info", "Phase 2: Execution")

        step = steps[cursor].transition(StepStatus.IN_PROGRESS)
        steps[cursor] = step
        context.add_log(
            "info",
            f"Executing step {cursor + 1}/{len(steps)}: {step.description}",
            step_id=step.id,
        )

        result = self.executor.execute_step(step, context)
        return {
            "steps": steps,
            "current": step,
            "last_result": result,
            "retry_allowed": not result.success and self.iterator.can_retry(step.id),
            "status": AgentStatus.EXECUTING,
        }

    def retry_node(self, state: AgentState) -> dict:
        context = state["context"]
        step = state["current"]

        context.add_log("warn", "Step failed, attempting recovery", step_id=step.id)
        result = self.iterator.retry_with_fix(step, state["last_result"], context, self.executor)
        return {
            "last_result": result,
            "retry_allowed": not result.success and self.iterator.can_retry(step.id),
        }

    def record_node(self, state: AgentState) -> dict:
        context = state["context"]
        cursor = state["cursor"]
        step = state["current"]
        result = state["last_result"]
        steps = list(state["steps"])

        if result.success:
            steps[cursor] = step.transition(StepStatus.COMPLETED)
            context.add_log("info", f"Step completed: {step.description}", step_id=step.id)
            return {
                "steps": steps,
                "completed_steps": [*state["completed_steps"], step.id],
                "cursor": cursor + 1,
            }

        steps[cursor] = step.transition(StepStatus.FAILED)
        context.add_log(
            "error",
            f"Step failed after retries: {step.description}",
            step_id=step.id,
            error=result.error,
        )
        update = {
            "steps": steps,
            "failed_steps": [*state["failed_steps"], step.id],
            "cursor": cursor + 1,
        }
        if not self.config.autonomous:
            # 비자율 모드: 첫 실패에서 중단
            update["error"] = f"Step failed: {result.error}"
            update["status"] = AgentStatus.FAILED
        return update

    def finish_node(self, state: AgentState) -> dict:
        state["context"].add_log(
            "info",
            "Agent execution completed",
            completed_steps=len(state["completed_steps"]),
            failed_steps=len(state["failed_steps"]),
        )
        return {"status": AgentStatus.COMPLETED}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _new_context(self, goal: str) -> ExecutionContext:
        context = ExecutionContext(goal=goal, working_directory=self.config.working_directory)
        context.metadata["task_id"] = self.config.task_id
        context.add_log("info", "Starting agent execution", goal=goal)
        return context

    def _recursion_limit(self, plan: Plan | None) -> int:
        # step당 executor + iterator(최대 max_retries) + record
        step_count = len(plan.steps) if plan is not None else self.config.max_iterations
        step_count = min(step_count, self.config.max_iterations) + 1
        return step_count * (self.iterator.max_retries + 2) + 10

    def _run(
        self,
        goal: str,
        context: ExecutionContext,
        plan: Plan | None,
        preview: bool,
        related_context: list[str] | None,
    ) -> AgentState:
        initial_state: AgentState = {
            "goal": goal,
            "context": context,
            "related_context": list(related_context or []),
            "preview": preview,
            "plan": plan,
            "steps": list(plan.steps) if plan is not None else [],
            "cursor": 0,
            "current": None,
            "last_result": None,
            "retry_allowed": False,
            "completed_steps": [],
            "failed_steps": [],
            "error": None,
            "status": AgentStatus.PLANNING if plan is None else AgentStatus.EXECUTING,
        }
        return self._graph.invoke(
            initial_state,
            config={"recursion_limit": self._recursion_limit(plan)},
        )

    def _result(self, final: AgentState, context: ExecutionContext) -> AgentResult:
        return AgentResult(
            status=final["status"],
            completed_steps=list(final["completed_steps"]),
            failed_steps=list(final["failed_steps"]),
            steps=list(final["steps"]),
            logs=context.logs,
            files_modified=context.files_modified,
            commands_run=context.commands_run,
            error=final.get("error"),
        )

    def _preview_result(self, plan: Plan, context: ExecutionContext) -> AgentResult:
        return AgentResult(
            status=AgentStatus.PREVIEWING,
            steps=list(plan.steps),
            logs=context.logs,
            plan=plan,
        )

    def _raise(self, final: AgentState, context: ExecutionContext) -> None:
        error = final["error"]
        context.add_log("error", "Agent execution failed", error=error)
        result = self._result(final, context)
        result.status = AgentStatus.FAILED
        raise AgentError(error, result=result)


def create_agent(
    config: AgentConfig | None = None,
    client: CompletionClient | None = None,
    app_settings: Settings | None = None,
) -> Agent:
    """설정에서 Agent 전체 구성 (도구, Planner, Executor, StepIterator).

    client를 주면 Planner와 StepIterator가 함께 사용한다.
    """
    cfg = app_settings or settings
    config = config or AgentConfig()

    tools = default_tools(config.working_directory, cfg)
    planner_client = client or LLMClient(model=config.model or cfg.planner_model)
    iterator_client = client or LLMClient(model=config.model or cfg.iterator_model)

    return Agent(
        planner=Planner(
            planner_client,
            tools,
            temperature=cfg.planner_temperature,
            max_tokens=cfg.planner_max_tokens,
        ),
        executor=Executor(tools),
        iterator=StepIterator(
            iterator_client,
            max_retries=cfg.max_retries,
            temperature=cfg.iterator_temperature,
            max_tokens=cfg.iterator_max_tokens,
        ),
        config=config,
    )
