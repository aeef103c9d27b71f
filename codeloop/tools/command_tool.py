"""Command tool: shell commands with a wall-clock timeout."""

import os
import signal
import subprocess
import time
from pathlib import Path
from typing import Any

from codeloop.errors import ToolExecutionError
from codeloop.tools.base import BaseTool, ExecutionResult, ToolRiskLevel
from codeloop.tools.schemas import CommandParams

DANGEROUS_PATTERNS = (
    "rm -rf /",
    "rm -rf ~",
    "rm -rf *",
    "mkfs",
    "dd if=",
    ":(){:|:&};:",
    "curl | sh",
    "wget | sh",
    "shutdown",
    "reboot",
    "init 0",
    "init 6",
)

MAX_OUTPUT_CHARS = 20000


def is_dangerous_command(command: str) -> bool:
    lowered = command.lower()
    return any(pattern in lowered for pattern in DANGEROUS_PATTERNS)


def _truncate(text: str) -> str:
    if len(text) <= MAX_OUTPUT_CHARS:
        return text
    half = MAX_OUTPUT_CHARS // 2
    return text[:half] + "\n\n... [truncated] ...\n\n" + text[-half:]


def _kill_process_group(proc: subprocess.Popen) -> None:
    """셸과 그 자식 프로세스를 함께 종료."""
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError):
        proc.kill()


class CommandTool(BaseTool):
    """셸 명령을 실행한다. 실행 시간은 timeout으로 제한된다."""

    name = "command"
    description = "Execute shell commands (build tools, test runners, package managers)"
    risk = ToolRiskLevel.HIGH
    params_model = CommandParams

    def __init__(
        self,
        base_dir: str | None = None,
        allow_shell_commands: bool = True,
        timeout: int = 60,
    ):
        self.base_dir = base_dir or os.getcwd()
        self.allow_shell_commands = allow_shell_commands
        self.timeout = timeout

    def execute(self, params: dict[str, Any]) -> ExecutionResult:
        parsed: CommandParams = self.parse_params(params)
        command = parsed.command

        if not self.allow_shell_commands:
            return ExecutionResult(
                success=False,
                error="Shell command execution is disabled in agent configuration",
            )

        if is_dangerous_command(command):
            raise ToolExecutionError(f"Command blocked for safety: {command}", self.name)

        cwd = self._resolve_cwd(parsed.cwd)
        timeout = parsed.timeout or self.timeout
        started = time.monotonic()

        try:
            proc = subprocess.Popen(
                command,
                shell=True,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                start_new_session=True,  # 타임아웃 시 프로세스 그룹 전체 종료
            )
        except OSError as e:
            raise ToolExecutionError(f"Failed to start command: {e}", self.name) from e

        try:
            raw_stdout, raw_stderr = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            _kill_process_group(proc)
            raw_stdout, raw_stderr = proc.communicate(timeout=5)
            partial = "\n".join(
                part.strip() for part in (raw_stdout or "", raw_stderr or "") if part.strip()
            )
            return ExecutionResult(
                success=False,
                output=_truncate(partial),
                error=f"Command timed out after {timeout}s",
                metadata={"command": command, "exit_code": -1, "duration": timeout},
            )

        stdout = (raw_stdout or "").strip()
        stderr = (raw_stderr or "").strip()
        metadata = {
            "command": command,
            "exit_code": proc.returncode,
            "stdout": stdout,
            "stderr": stderr,
            "duration": round(time.monotonic() - started, 3),
        }

        if proc.returncode != 0:
            return ExecutionResult(
                success=False,
                output=_truncate("\n".join(part for part in (stdout, stderr) if part)),
                error=f"Command exited with code {proc.returncode}",
                metadata=metadata,
            )

        return ExecutionResult(success=True, output=_truncate(stdout or stderr), metadata=metadata)

    def _resolve_cwd(self, cwd: str | None) -> str:
        """작업 디렉토리 밖을 가리키는 cwd는 거부."""
        base = Path(self.base_dir).resolve()
        if not cwd:
            return str(base)
        target = (base / cwd).resolve()
        if target != base and not target.is_relative_to(base):
            raise ToolExecutionError(
                f"Access denied: cwd {cwd} is outside the project directory", self.name
            )
        return str(target)
