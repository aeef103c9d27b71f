"""File tool: read, write, patch."""

import os
from pathlib import Path
from typing import Any

from codeloop.errors import ToolExecutionError
from codeloop.tools.base import BaseTool, ExecutionResult, ToolRiskLevel
from codeloop.tools.schemas import FileParams


class FileTool(BaseTool):
    """프로젝트 디렉토리 안의 파일을 읽고, 쓰고, 부분 수정한다."""

    name = "file"
    description = "Read, write, or patch files in the project directory"
    risk = ToolRiskLevel.MEDIUM
    params_model = FileParams

    def __init__(self, base_dir: str | None = None):
        self.base_dir = Path(base_dir or os.getcwd()).resolve()

    def execute(self, params: dict[str, Any]) -> ExecutionResult:
        parsed: FileParams = self.parse_params(params)
        target = self._resolve(parsed.path)

        if parsed.action == "read":
            return self._read(target)
        if parsed.action == "write":
            return self._write(target, parsed.content)
        return self._patch(target, parsed.search, parsed.replace)

    def _resolve(self, path: str) -> Path:
        """작업 디렉토리 밖을 가리키는 경로는 거부."""
        target = (self.base_dir / path).resolve()
        if target != self.base_dir and not target.is_relative_to(self.base_dir):
            raise ToolExecutionError(
                f"Access denied: {path} is outside the project directory", self.name
            )
        return target

    def _relative(self, target: Path) -> str:
        return target.relative_to(self.base_dir).as_posix()

    def _read(self, target: Path) -> ExecutionResult:
        try:
            content = target.read_text(encoding="utf-8")
        except OSError as e:
            raise ToolExecutionError(f"Failed to read file {self._relative(target)}: {e}", self.name) from e

        return ExecutionResult(
            success=True,
            output=content,
            metadata={"file_path": self._relative(target), "size": len(content)},
        )

    def _write(self, target: Path, content: str) -> ExecutionResult:
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            raise ToolExecutionError(f"Failed to write file {self._relative(target)}: {e}", self.name) from e

        relative = self._relative(target)
        return ExecutionResult(
            success=True,
            output=f"File written successfully: {relative}",
            metadata={"file_path": relative, "files_modified": [relative]},
        )

    def _patch(self, target: Path, search: str, replace: str) -> ExecutionResult:
        relative = self._relative(target)
        try:
            content = target.read_text(encoding="utf-8")
        except OSError as e:
            raise ToolExecutionError(f"Failed to patch file {relative}: {e}", self.name) from e

        if search not in content:
            return ExecutionResult(
                success=False,
                error=f"Search text not found in {relative}: {search[:50]}",
                metadata={"file_path": relative},
            )

        # 첫 번째 일치 항목만 교체
        target.write_text(content.replace(search, replace, 1), encoding="utf-8")

        return ExecutionResult(
            success=True,
            output=f"File patched successfully: {relative}",
            metadata={"file_path": relative, "files_modified": [relative]},
        )
