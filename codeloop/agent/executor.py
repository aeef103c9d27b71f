"""Executor.

- plan에 정의된 step을 그대로 실행
- 부수 효과(파일, 명령)를 context에 기록
- 판단 ❌, 전략 수정 ❌
- 도구 예외는 실패 결과로 변환 (경계 밖으로 예외 전파 금지)
"""

import logging
from typing import Iterable

from codeloop.tools import BaseTool, ExecutionResult
from .context import CommandRecord, ExecutionContext
from .schemas import PlanStep

logger = logging.getLogger(__name__)

MAX_LOGGED_OUTPUT = 500


class Executor:
    """Step 하나를 도구 호출로 실행."""

    def __init__(self, tools: Iterable[BaseTool]):
        self._tools = {tool.name: tool for tool in tools}

    @property
    def tools(self) -> list[BaseTool]:
        return list(self._tools.values())

    def get_tool(self, name: str) -> BaseTool | None:
        return self._tools.get(name)

    def execute_step(self, step: PlanStep, context: ExecutionContext) -> ExecutionResult:
        """Step 실행.

        Returns:
            성공/실패가 정규화된 ExecutionResult (예외는 발생하지 않음)
        """
        context.add_log(
            "info",
            f"Executing: {step.description}",
            step_id=step.id,
            tool=step.tool,
            params=step.params,
        )

        tool = self.get_tool(step.tool)
        if tool is None:
            return self._fail(step, context, f"Tool not found: {step.tool}")

        try:
            result = tool.execute(step.params)
        except Exception as e:
            logger.debug("Tool %s raised", step.tool, exc_info=True)
            return self._fail(step, context, f"Tool execution failed: {e}")

        if not result.success:
            context.add_log(
                "error",
                f"Step failed: {step.description}",
                step_id=step.id,
                error=result.error,
            )
            return result

        context.add_log(
            "info",
            f"Step succeeded: {step.description}",
            step_id=step.id,
            output=result.output[:MAX_LOGGED_OUTPUT],
        )
        self._track_side_effects(result, context)
        return result

    @staticmethod
    def _fail(step: PlanStep, context: ExecutionContext, error: str) -> ExecutionResult:
        context.add_log("error", f"Step failed: {step.description}", step_id=step.id, error=error)
        return ExecutionResult(success=False, error=error)

    @staticmethod
    def _track_side_effects(result: ExecutionResult, context: ExecutionContext) -> None:
        metadata = result.metadata
        for path in metadata.get("files_modified") or []:
            context.add_file_modified(path)

        if metadata.get("command"):
            context.add_command_run(
                CommandRecord(
                    command=metadata["command"],
                    exit_code=metadata.get("exit_code") or 0,
                    stdout=metadata.get("stdout") or "",
                    stderr=metadata.get("stderr") or "",
                    duration=metadata.get("duration") or 0.0,
                )
            )
