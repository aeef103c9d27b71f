"""도구 입력 스키마 정의.

도구 이름별로 하나의 pydantic 모델을 둔다 (tool name으로 구분되는 tagged union).
Planner는 계획 단계에서, 각 도구는 실행 직전에, Iterator는 수정된 파라미터에
대해 같은 모델로 검증한다.
"""

from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, model_validator


class FileParams(BaseModel):
    """file 도구 입력."""

    action: Literal["read", "write", "patch"] = Field(description="수행할 파일 작업")
    path: str = Field(min_length=1, description="작업 디렉토리 기준 상대 경로")
    content: str | None = Field(default=None, description="기록할 내용 (write)")
    search: str | None = Field(default=None, description="찾을 텍스트 (patch)")
    replace: str | None = Field(default=None, description="바꿀 텍스트 (patch)")

    @model_validator(mode="after")
    def _check_action_fields(self) -> "FileParams":
        if self.action == "write" and self.content is None:
            raise ValueError("content is required for write action")
        if self.action == "patch" and (not self.search or self.replace is None):
            raise ValueError("search and replace are required for patch action")
        return self


class CommandParams(BaseModel):
    """command 도구 입력."""

    command: str = Field(min_length=1, description="실행할 셸 명령")
    cwd: str | None = Field(default=None, description="명령 실행 디렉토리 (선택)")
    timeout: int | None = Field(default=None, gt=0, description="타임아웃(초) (선택)")


class GitParams(BaseModel):
    """git 도구 입력.

    LLM이 다른 필드명을 쓰는 경우가 있어 alias를 함께 받는다.
    """

    action: Literal["status", "add", "commit", "branch", "push", "pr"] = Field(
        validation_alias=AliasChoices("action", "operation"),
        description="수행할 Git 작업",
    )
    message: str | None = Field(default=None, description="커밋 메시지 (commit)")
    branch_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("branch_name", "branchName", "name"),
        description="생성할 브랜치 이름 (branch)",
    )
    checkout: bool = Field(default=False, description="브랜치 생성 후 전환 여부 (branch)")
    files: list[str] | None = Field(default=None, description="스테이징할 파일 (add)")
    branch: str | None = Field(default=None, description="push 대상 브랜치 (push)")
    set_upstream: bool = Field(
        default=False,
        validation_alias=AliasChoices("set_upstream", "setUpstream"),
        description="upstream 설정 여부 (push)",
    )
    title: str | None = Field(
        default=None,
        validation_alias=AliasChoices("title", "prTitle"),
        description="PR 제목 (pr)",
    )
    body: str | None = Field(
        default=None,
        validation_alias=AliasChoices("body", "prBody"),
        description="PR 본문 (pr)",
    )
    base: str = Field(default="main", description="PR base 브랜치 (pr)")
    head: str | None = Field(default=None, description="PR head 브랜치 (pr)")

    @model_validator(mode="after")
    def _check_action_fields(self) -> "GitParams":
        if self.action == "commit" and not self.message:
            raise ValueError("message is required for commit action")
        if self.action == "branch" and not self.branch_name:
            raise ValueError("branch_name is required for branch action")
        if self.action == "pr" and not (self.title and self.body):
            raise ValueError("title and body are required for pr action")
        return self
