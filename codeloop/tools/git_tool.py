"""Git tool: status, add, commit, branch, push, pull requests."""

import os
import shlex
import subprocess
import time
from typing import Any

from codeloop.errors import ToolExecutionError
from codeloop.tools.base import BaseTool, ExecutionResult, ToolRiskLevel
from codeloop.tools.schemas import GitParams


def parse_porcelain_status(stdout: str) -> dict[str, Any]:
    """'git status --porcelain --branch' 출력을 분류.

    Returns:
        branch, modified, created, deleted, untracked 키를 가진 dict
    """
    status: dict[str, Any] = {
        "branch": None,
        "modified": [],
        "created": [],
        "deleted": [],
        "untracked": [],
    }
    for line in stdout.splitlines():
        if line.startswith("## "):
            header = line[3:]
            if header.startswith("No commits yet on "):
                status["branch"] = header[len("No commits yet on "):].strip()
            else:
                status["branch"] = header.split("...", 1)[0].strip()
            continue
        if len(line) < 4:
            continue

        index, worktree, path = line[0], line[1], line[3:]
        # rename: "R  old -> new"
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        path = path.strip().strip('"')

        if index == "?" and worktree == "?":
            status["untracked"].append(path)
        elif "D" in (index, worktree):
            status["deleted"].append(path)
        elif index == "A":
            status["created"].append(path)
        else:
            status["modified"].append(path)
    return status


class GitTool(BaseTool):
    """git / gh CLI를 subprocess로 호출한다."""

    name = "git"
    description = "Perform Git operations: status, add, commit, branch, push, create PR"
    risk = ToolRiskLevel.HIGH
    params_model = GitParams

    def __init__(
        self,
        base_dir: str | None = None,
        allow_git_push: bool = False,
        timeout: int = 60,
    ):
        self.base_dir = base_dir or os.getcwd()
        self.allow_git_push = allow_git_push
        self.timeout = timeout

    def execute(self, params: dict[str, Any]) -> ExecutionResult:
        parsed: GitParams = self.parse_params(params)

        if parsed.action == "status":
            return self._status()
        if parsed.action == "add":
            return self._add(parsed.files or ["."])
        if parsed.action == "commit":
            return self._commit(parsed.message)
        if parsed.action == "branch":
            return self._branch(parsed.branch_name, parsed.checkout)
        if parsed.action == "push":
            return self._push(parsed.branch, parsed.set_upstream)
        return self._create_pr(parsed.title, parsed.body, parsed.base, parsed.head)

    # ------------------------------------------------------------------
    # Process helpers
    # ------------------------------------------------------------------

    def _run(self, args: list[str], missing_hint: str | None = None) -> tuple[subprocess.CompletedProcess, dict]:
        started = time.monotonic()
        try:
            proc = subprocess.run(
                args,
                cwd=self.base_dir,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise ToolExecutionError(missing_hint or f"{args[0]} is not installed", self.name) from e
        except subprocess.TimeoutExpired as e:
            raise ToolExecutionError(
                f"'{shlex.join(args)}' timed out after {self.timeout}s", self.name
            ) from e

        metadata = {
            "command": shlex.join(args),
            "exit_code": proc.returncode,
            "stdout": proc.stdout.strip(),
            "stderr": proc.stderr.strip(),
            "duration": round(time.monotonic() - started, 3),
        }
        return proc, metadata

    @staticmethod
    def _failure(what: str, metadata: dict) -> ExecutionResult:
        detail = metadata["stderr"] or metadata["stdout"] or f"exit code {metadata['exit_code']}"
        return ExecutionResult(
            success=False,
            output=metadata["stdout"],
            error=f"Failed to {what}: {detail}",
            metadata=metadata,
        )

    def _current_branch(self) -> str | None:
        proc, _ = self._run(["git", "rev-parse", "--abbrev-ref", "HEAD"])
        branch = proc.stdout.strip()
        if proc.returncode != 0 or not branch or branch == "HEAD":
            return None
        return branch

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _status(self) -> ExecutionResult:
        proc, metadata = self._run(["git", "status", "--porcelain", "--branch"])
        if proc.returncode != 0:
            return self._failure("get git status", metadata)

        status = parse_porcelain_status(proc.stdout)
        lines = [
            f"Current branch: {status['branch']}",
            f"Modified files: {len(status['modified'])}",
            f"Added files: {len(status['created'])}",
            f"Deleted files: {len(status['deleted'])}",
            f"Untracked files: {len(status['untracked'])}",
            "",
            "Files:",
            *(f"  M {f}" for f in status["modified"]),
            *(f"  A {f}" for f in status["created"]),
            *(f"  D {f}" for f in status["deleted"]),
            *(f"  ? {f}" for f in status["untracked"]),
        ]
        metadata.update(status)
        return ExecutionResult(success=True, output="\n".join(lines), metadata=metadata)

    def _add(self, files: list[str]) -> ExecutionResult:
        proc, metadata = self._run(["git", "add", "--", *files])
        if proc.returncode != 0:
            return self._failure("add files", metadata)
        metadata["files"] = files
        return ExecutionResult(success=True, output=f"Staged files: {', '.join(files)}", metadata=metadata)

    def _commit(self, message: str) -> ExecutionResult:
        proc, metadata = self._run(["git", "status", "--porcelain"])
        if proc.returncode != 0:
            return self._failure("commit", metadata)

        changed = [line for line in proc.stdout.splitlines() if line.strip()]
        if not changed:
            return ExecutionResult(
                success=False,
                output="No changes to commit",
                error="Working directory is clean",
            )

        proc, metadata = self._run(["git", "add", "-A"])
        if proc.returncode != 0:
            return self._failure("stage changes", metadata)

        proc, metadata = self._run(["git", "commit", "-m", message])
        if proc.returncode != 0:
            return self._failure("commit", metadata)

        head, _ = self._run(["git", "rev-parse", "HEAD"])
        commit_hash = head.stdout.strip()
        metadata.update({"commit": commit_hash, "message": message, "files_committed": len(changed)})

        return ExecutionResult(
            success=True,
            output=f"Committed: {message}\nCommit hash: {commit_hash}\nFiles: {len(changed)}",
            metadata=metadata,
        )

    def _branch(self, branch_name: str, checkout: bool) -> ExecutionResult:
        if checkout:
            proc, metadata = self._run(["git", "checkout", "-b", branch_name])
            output = f"Created and switched to branch: {branch_name}"
        else:
            proc, metadata = self._run(["git", "branch", branch_name])
            output = f"Created branch: {branch_name}"

        if proc.returncode != 0:
            return self._failure("create branch", metadata)
        metadata["branch"] = branch_name
        return ExecutionResult(success=True, output=output, metadata=metadata)

    def _push(self, branch: str | None, set_upstream: bool) -> ExecutionResult:
        if not self.allow_git_push:
            raise ToolExecutionError("Git push is disabled in agent configuration", self.name)

        target = branch or self._current_branch()
        if not target:
            raise ToolExecutionError("No current branch to push", self.name)

        args = ["git", "push"]
        if set_upstream:
            args.append("--set-upstream")
        proc, metadata = self._run([*args, "origin", target])
        if proc.returncode != 0:
            return self._failure("push", metadata)

        metadata["branch"] = target
        return ExecutionResult(success=True, output=f"Pushed branch {target} to origin", metadata=metadata)

    def _create_pr(self, title: str, body: str, base: str, head: str | None) -> ExecutionResult:
        args = ["gh", "pr", "create", "--title", title, "--body", body, "--base", base]
        if head:
            args += ["--head", head]

        proc, metadata = self._run(
            args,
            missing_hint="GitHub CLI (gh) is not installed. Install it from https://cli.github.com/",
        )
        if proc.returncode != 0:
            return self._failure("create PR", metadata)

        pr_url = proc.stdout.strip()
        metadata.update({"pr_url": pr_url, "title": title, "base": base, "head": head})
        return ExecutionResult(success=True, output=pr_url, metadata=metadata)
