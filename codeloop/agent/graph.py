"""Agent Graph Builder.

- 제어 흐름은 그래프(State + Edge)로만 결정
- step은 plan 순서대로 하나씩 실행 (병렬 실행 ❌)
"""

from typing import TYPE_CHECKING

from langgraph.graph import END, START, StateGraph

from .state import AgentState

if TYPE_CHECKING:
    from .agent import Agent


def route_start(state: AgentState) -> str:
    """시작 분기.

    - plan 없음 → planner
    - plan 주입됨 (apply) → executor / 빈 plan이면 finish
    """
    if state.get("plan") is None:
        return "planner"
    if state["steps"]:
        return "executor"
    return "finish"


def after_planner(state: AgentState) -> str:
    """Planner 후 분기.

    - error 있음 → 종료 (PlanningError는 치명적)
    - preview → 종료 (승인 게이트, 도구 실행 없음)
    - steps 있음 → executor
    """
    if state.get("error"):
        return END
    if state.get("preview"):
        return END
    if state["steps"]:
        return "executor"
    return "finish"


def after_attempt(state: AgentState) -> str:
    """실행/재시도 후 분기.

    - error 있음 (반복 한도, 취소) → 종료
    - 실패 + 재시도 가능 → iterator
    - 그 외 → record
    """
    if state.get("error"):
        return END
    result = state["last_result"]
    if result is not None and not result.success and state.get("retry_allowed"):
        return "iterator"
    return "record"


def after_record(state: AgentState) -> str:
    """결과 기록 후 분기.

    - error 있음 (비자율 모드 실패) → 종료, 남은 step은 실행하지 않음
    - 남은 step 있음 → executor
    - 모두 완료 → finish
    """
    if state.get("error"):
        return END
    if state["cursor"] < len(state["steps"]):
        return "executor"
    return "finish"


def build_agent_graph(agent: "Agent"):
    """Agent 그래프 생성.

    그래프 구조:
    ```
    START → planner → [executor ↔ iterator] → record → ... → finish → END
         ↘ executor (apply: plan 주입)   ↘ END (preview / error)
    ```

    Returns:
        컴파일된 StateGraph
    """
    workflow = StateGraph(AgentState)

    workflow.add_node("planner", agent.plan_node)
    workflow.add_node("executor", agent.execute_node)
    workflow.add_node("iterator", agent.retry_node)
    workflow.add_node("record", agent.record_node)
    workflow.add_node("finish", agent.finish_node)

    workflow.add_conditional_edges(
        START,
        route_start,
        {
            "planner": "planner",
            "executor": "executor",
            "finish": "finish",
        },
    )

    workflow.add_conditional_edges(
        "planner",
        after_planner,
        {
            "executor": "executor",
            "finish": "finish",
            END: END,
        },
    )

    for node in ("executor", "iterator"):
        workflow.add_conditional_edges(
            node,
            after_attempt,
            {
                "iterator": "iterator",
                "record": "record",
                END: END,
            },
        )

    workflow.add_conditional_edges(
        "record",
        after_record,
        {
            "executor": "executor",
            "finish": "finish",
            END: END,
        },
    )

    workflow.add_edge("finish", END)

    return workflow.compile()
