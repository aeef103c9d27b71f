"""Tool registry for the agent."""

from typing import Iterable

from codeloop.config import Settings, settings
from .base import BaseTool, ToolRiskLevel
from .command_tool import CommandTool
from .file_tool import FileTool
from .git_tool import GitTool

RISK_EMOJI = {
    ToolRiskLevel.LOW: "🟢",
    ToolRiskLevel.MEDIUM: "🟡",
    ToolRiskLevel.HIGH: "🔴",
}


def default_tools(
    working_directory: str | None = None,
    app_settings: Settings | None = None,
) -> list[BaseTool]:
    """작업 디렉토리에 묶인 기본 도구 세트 생성.

    Agent 실행마다 새로 만든다 (도구 간 공유 상태 없음).
    """
    cfg = app_settings or settings
    base_dir = working_directory or cfg.working_directory
    return [
        FileTool(base_dir),
        CommandTool(
            base_dir,
            allow_shell_commands=cfg.allow_shell_commands,
            timeout=cfg.command_timeout,
        ),
        GitTool(
            base_dir,
            allow_git_push=cfg.allow_git_push,
            timeout=cfg.command_timeout,
        ),
    ]


def _param_type(param_info: dict) -> str:
    if "enum" in param_info:
        return " | ".join(f'"{v}"' for v in param_info["enum"])
    # Optional 필드는 anyOf [T, null]로 표현됨
    if "anyOf" in param_info:
        types = [
            opt.get("type")
            for opt in param_info["anyOf"]
            if opt.get("type") and opt.get("type") != "null"
        ]
        return " | ".join(types) or "any"
    return param_info.get("type", "any")


def get_tool_manifest_text(tools: Iterable[BaseTool]) -> str:
    """Planner 프롬프트에 넣을 도구 설명 (입력 스키마 포함)."""
    lines = ["Available tools:", ""]

    for tool in tools:
        definition = tool.to_definition()
        emoji = RISK_EMOJI[tool.risk]
        lines.append(f"- **{definition['name']}** {emoji}: {definition['description']}")

        schema = definition["parameters"]
        params = schema.get("properties", {})
        required = schema.get("required", [])

        if params:
            lines.append("  - params:")
            for param_name, param_info in params.items():
                param_type = _param_type(param_info)
                param_desc = param_info.get("description", "")
                req_str = "required" if param_name in required else "optional"
                lines.append(f"    - `{param_name}` ({param_type}, {req_str}): {param_desc}")
        else:
            lines.append("  - params: none")
        lines.append("")

    return "\n".join(lines)
