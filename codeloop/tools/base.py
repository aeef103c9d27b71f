"""Tool contract shared by every capability the agent can invoke."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from codeloop.errors import ToolExecutionError


class ToolRiskLevel(str, Enum):
    """도구 위험도 수준."""

    LOW = "low"  # 읽기 전용
    MEDIUM = "medium"  # 로컬 파일 변경
    HIGH = "high"  # 프로세스 실행, 원격 저장소 변경


class ExecutionResult(BaseModel):
    """Uniform outcome of a tool call or an executed step.

    ``metadata["files_modified"]`` and ``metadata["command"]`` are how side
    effects reach the ExecutionContext; tools that write files or spawn
    processes must fill them in.
    """

    success: bool
    output: str = ""
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class BaseTool(ABC):
    """A named capability with a typed parameter model."""

    name: str
    description: str
    risk: ToolRiskLevel = ToolRiskLevel.LOW
    params_model: type[BaseModel]

    @property
    def parameter_schema(self) -> dict[str, Any]:
        return self.params_model.model_json_schema()

    def validate_params(self, params: dict[str, Any] | None) -> BaseModel:
        """Validate raw params against this tool's model.

        Raises:
            pydantic.ValidationError: params do not match the model
        """
        return self.params_model.model_validate(params or {})

    def parse_params(self, params: dict[str, Any] | None) -> Any:
        try:
            return self.validate_params(params)
        except ValidationError as e:
            raise ToolExecutionError(
                f"Invalid parameters for '{self.name}': {e}", self.name
            ) from e

    def to_definition(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameter_schema,
        }

    @abstractmethod
    def execute(self, params: dict[str, Any]) -> ExecutionResult:
        """Run the tool. May raise ToolExecutionError."""
