"""Planner.

- 목표 해석 + 실행 가능한 plan 생성
- tool 실행 ❌
- 스키마 검증 실패 시 실행 금지 (PlanningError)
- step 순서는 모델이 반환한 순서 그대로, dependencies는 참고용
"""

import logging
from typing import Iterable

from pydantic import ValidationError

from codeloop.config import settings
from codeloop.errors import PlanningError
from codeloop.llm import CompletionClient
from codeloop.tools import BaseTool, get_tool_manifest_text
from .context import ExecutionContext
from .parsing import parse_structured_output
from .schemas import Plan, PlanDraft, PlanStep

logger = logging.getLogger(__name__)


PLANNER_PROMPT = """You are an expert planning agent for software development tasks.
Your job is to break down high-level goals into concrete, executable steps.

## Rules
1. Only use the tools listed below
2. Each step calls exactly one tool
3. Steps run strictly in the order you list them
4. Start by reading relevant files to understand the codebase
5. Make incremental changes and test after significant changes
6. Commit changes with clear messages
7. Each step should be atomic and focused

{tool_manifest}

## Output Format
Return ONLY a valid JSON object with this structure:
{{
  "reasoning": "Brief explanation of the approach",
  "steps": [
    {{
      "id": "step-1",
      "description": "What this step does",
      "tool": "file|command|git",
      "params": {{"param": "value"}},
      "dependencies": []
    }}
  ]
}}"""


class Planner:
    """목표를 Plan으로 변환."""

    def __init__(
        self,
        client: CompletionClient,
        tools: Iterable[BaseTool],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ):
        self.client = client
        self.tools = {tool.name: tool for tool in tools}
        self.temperature = settings.planner_temperature if temperature is None else temperature
        self.max_tokens = max_tokens or settings.planner_max_tokens

    def create_plan(
        self,
        goal: str,
        context: ExecutionContext,
        related_context: list[str] | None = None,
    ) -> Plan:
        """사용자 목표를 실행 계획으로 변환.

        Args:
            goal: 사용자 목표
            context: 현재 실행 컨텍스트 (로그 기록용)
            related_context: 이전 실행에서 검색된 참고 문자열 (선택)

        Returns:
            검증된 Plan

        Raises:
            PlanningError: LLM 호출 실패, 파싱 실패, 스키마 검증 실패
        """
        context.add_log("info", "Creating execution plan")

        system_prompt = PLANNER_PROMPT.format(
            tool_manifest=get_tool_manifest_text(self.tools.values()),
        )
        prompt = self._build_prompt(goal, context, related_context)

        try:
            response = self.client.generate_completion(
                system_prompt=system_prompt,
                prompt=prompt,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
            parsed = parse_structured_output(response.text)
            draft = PlanDraft.model_validate(parsed)
            plan = self._build_plan(draft)
        except PlanningError as e:
            context.add_log("error", "Failed to create plan", error=str(e))
            raise
        except Exception as e:
            # Fail-closed: 어떤 실패든 실행 금지
            context.add_log("error", "Failed to create plan", error=str(e))
            raise PlanningError(f"Planning failed: {e}") from e

        context.add_log(
            "info",
            f"Plan created with {len(plan.steps)} steps",
            plan=plan.model_dump(mode="json"),
        )
        return plan

    def _build_prompt(
        self,
        goal: str,
        context: ExecutionContext,
        related_context: list[str] | None,
    ) -> str:
        prompt = f"Goal: {goal}\n\nWorking directory: {context.working_directory}\n"

        if related_context:
            prompt += "\n## Related context\n"
            prompt += "\n\n".join(related_context)
            prompt += "\n"

        prompt += (
            "\nCreate a detailed execution plan to achieve this goal.\n"
            "Break it down into clear, executable steps using the available tools."
        )
        return prompt

    def _build_plan(self, draft: PlanDraft) -> Plan:
        """Draft 검증 및 정규화 (도구 이름, 파라미터, id)."""
        steps: list[PlanStep] = []
        seen_ids: set[str] = set()

        for idx, raw in enumerate(draft.steps, 1):
            tool = self.tools.get(raw.tool)
            if tool is None:
                raise PlanningError(f"Step {idx} uses an unknown tool: {raw.tool}")

            try:
                tool.validate_params(raw.params)
            except ValidationError as e:
                raise PlanningError(f"Step {idx} has invalid params for '{raw.tool}': {e}") from e

            # id가 없으면 자동 부여
            step_id = str(raw.id) if raw.id is not None else f"step-{idx}"
            if step_id in seen_ids:
                raise PlanningError(f"Duplicate step id in plan: {step_id}")
            seen_ids.add(step_id)

            steps.append(
                PlanStep(
                    id=step_id,
                    description=raw.description or f"{raw.tool} step {idx}",
                    tool=raw.tool,
                    params=raw.params,
                    dependencies=[str(dep) for dep in raw.dependencies],
                )
            )

        return Plan(steps=steps, reasoning=draft.reasoning, estimated_steps=len(steps))
