"""Step Iterator.

- 실패 원인 분석 후 파라미터 수정 제안 요청
- 수정된 step(같은 id)을 Executor로 재실행
- step별 최대 재시도 횟수 제한
- 재시도 실패는 그대로 반환 (재귀 재시도 ❌, 판단은 Agent 루프가 함)
"""

import json
import logging

from pydantic import ValidationError

from codeloop.config import settings
from codeloop.llm import CompletionClient
from codeloop.tools import ExecutionResult
from .context import ExecutionContext
from .executor import Executor
from .parsing import parse_structured_output
from .schemas import PlanStep, Remediation

logger = logging.getLogger(__name__)


ITERATOR_PROMPT = """You are an expert debugging agent.
A step in a software development task has failed.
Analyze the error and suggest how to fix it by changing the tool parameters.

Return ONLY a valid JSON object:
{
  "reasoning": "Why it failed and how to fix it",
  "modified_params": {"param": "value"}
}

The tool stays the same; only its parameters may change.
If the error is not fixable, return "modified_params": null."""


class StepIterator:
    """실패한 step의 재시도 관리.

    재시도 횟수는 인스턴스에만 저장된다. 새 실행에는 새 인스턴스를 쓰거나
    reset()을 명시적으로 호출한다.
    """

    def __init__(
        self,
        client: CompletionClient,
        max_retries: int | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ):
        self.client = client
        self.max_retries = settings.max_retries if max_retries is None else max_retries
        self.temperature = settings.iterator_temperature if temperature is None else temperature
        self.max_tokens = max_tokens or settings.iterator_max_tokens
        self._retry_count: dict[str, int] = {}

    def attempts(self, step_id: str) -> int:
        return self._retry_count.get(step_id, 0)

    def can_retry(self, step_id: str) -> bool:
        return self.attempts(step_id) < self.max_retries

    def reset_retry_count(self, step_id: str) -> None:
        self._retry_count.pop(step_id, None)

    def reset(self) -> None:
        self._retry_count.clear()

    def retry_with_fix(
        self,
        step: PlanStep,
        failed_result: ExecutionResult,
        context: ExecutionContext,
        executor: Executor,
    ) -> ExecutionResult:
        """수정 제안을 받아 step을 한 번 재실행.

        Args:
            step: 실패한 step
            failed_result: 직전 실패 결과
            context: 실행 컨텍스트
            executor: 수정된 step을 실행할 Executor

        Returns:
            재실행 결과. 수정 제안이 없거나 유효하지 않으면 failed_result 그대로.
        """
        attempt = self.attempts(step.id) + 1
        self._retry_count[step.id] = attempt
        context.add_log(
            "info",
            f"Attempting to fix failed step (attempt {attempt}/{self.max_retries})",
            step_id=step.id,
        )

        remediation = self._get_remediation(step, failed_result, context)
        if remediation is None:
            return failed_result

        context.add_log("info", f"Fix strategy: {remediation.reasoning}", step_id=step.id)

        # 수정된 파라미터도 도구 스키마로 재검증
        tool = executor.get_tool(step.tool)
        if tool is not None:
            try:
                tool.validate_params(remediation.modified_params)
            except ValidationError as e:
                context.add_log(
                    "warn",
                    "Rejected fix: modified params do not match the tool schema",
                    step_id=step.id,
                    error=str(e),
                )
                return failed_result

        modified_step = step.with_fix(remediation.modified_params)
        return executor.execute_step(modified_step, context)

    def _get_remediation(
        self,
        step: PlanStep,
        failed_result: ExecutionResult,
        context: ExecutionContext,
    ) -> Remediation | None:
        prompt = (
            "Failed step:\n"
            f"Description: {step.description}\n"
            f"Tool: {step.tool}\n"
            f"Parameters: {json.dumps(step.params, indent=2, ensure_ascii=False)}\n\n"
            f"Error: {failed_result.error}\n"
            f"Output: {failed_result.output}\n\n"
            "How should this be fixed?"
        )

        try:
            response = self.client.generate_completion(
                system_prompt=ITERATOR_PROMPT,
                prompt=prompt,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
            remediation = Remediation.model_validate(parse_structured_output(response.text))
        except Exception as e:
            context.add_log("error", f"Failed to get fix strategy: {e}", step_id=step.id)
            return None

        if remediation.modified_params is None:
            context.add_log(
                "info",
                f"Failure judged unfixable: {remediation.reasoning}",
                step_id=step.id,
            )
            return None
        return remediation
