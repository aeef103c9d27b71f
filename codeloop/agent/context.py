"""Execution context: per-run audit trail.

하나의 Agent 실행이 독점 소유한다. 동시 실행 간 공유 금지.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

logger = logging.getLogger(__name__)

LogLevel = Literal["debug", "info", "warn", "error"]

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass
class LogEntry:
    timestamp: datetime
    level: LogLevel
    message: str
    step_id: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class CommandRecord:
    command: str
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    duration: float = 0.0


@dataclass
class ExecutionContext:
    """Logs, modified files and commands of one agent run.

    Attributes:
        goal: 사용자 목표 원문
        working_directory: 도구가 동작하는 디렉토리
        files_modified: 변경된 파일 (삽입 순서 유지, 중복 없음)
        commands_run: 실행된 명령 기록
        logs: 타임스탬프가 붙은 로그 (append-only)
        metadata: 호출자가 붙이는 부가 정보
    """

    goal: str
    working_directory: str = field(default_factory=os.getcwd)
    files_modified: list[str] = field(default_factory=list)
    commands_run: list[CommandRecord] = field(default_factory=list)
    logs: list[LogEntry] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def add_log(
        self,
        level: LogLevel,
        message: str,
        step_id: str | None = None,
        **data: Any,
    ) -> LogEntry:
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc),
            level=level,
            message=message,
            step_id=step_id,
            data=data,
        )
        self.logs.append(entry)
        if step_id:
            logger.log(_LEVELS[level], "[%s] %s", step_id, message)
        else:
            logger.log(_LEVELS[level], "%s", message)
        return entry

    def add_file_modified(self, path: str) -> bool:
        """경로 추가. 이미 있으면 False."""
        normalized = os.path.normpath(path)
        if normalized in self.files_modified:
            return False
        self.files_modified.append(normalized)
        return True

    def add_command_run(self, record: CommandRecord) -> None:
        self.commands_run.append(record)

    def logs_for_step(self, step_id: str) -> list[LogEntry]:
        return [entry for entry in self.logs if entry.step_id == step_id]
