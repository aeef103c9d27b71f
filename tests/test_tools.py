import shutil
import subprocess
import time
from unittest.mock import patch

import pytest

from codeloop.errors import ToolExecutionError
from codeloop.tools import CommandTool, FileTool, GitTool, get_tool_manifest_text
from codeloop.tools.git_tool import parse_porcelain_status

# ---------------------------------------------------------------------------
# File tool
# ---------------------------------------------------------------------------

def test_file_write_creates_parents_and_reports_relative_path(workspace):
    tool = FileTool(str(workspace))
    result = tool.execute({"action": "write", "path": "docs/guide.md", "content": "# Guide\n"})

    assert result.success
    assert result.metadata["files_modified"] == ["docs/guide.md"]
    assert (workspace / "docs" / "guide.md").read_text() == "# Guide\n"

def test_file_read(workspace):
    (workspace / "a.txt").write_text("hello")
    result = FileTool(str(workspace)).execute({"action": "read", "path": "a.txt"})
    assert result.success
    assert result.output == "hello"
    assert "files_modified" not in result.metadata

def test_file_patch_replaces_first_occurrence(workspace):
    (workspace / "a.py").write_text("x = 1\nx = 1\n")
    result = FileTool(str(workspace)).execute(
        {"action": "patch", "path": "a.py", "search": "x = 1", "replace": "x = 2"}
    )
    assert result.success
    assert (workspace / "a.py").read_text() == "x = 2\nx = 1\n"
    assert result.metadata["files_modified"] == ["a.py"]

def test_file_patch_missing_search_text_fails(workspace):
    (workspace / "a.py").write_text("x = 1\n")
    result = FileTool(str(workspace)).execute(
        {"action": "patch", "path": "a.py", "search": "y = 1", "replace": "y = 2"}
    )
    assert not result.success
    assert "Search text not found" in result.error

def test_file_read_missing_file_raises(workspace):
    with pytest.raises(ToolExecutionError, match="Failed to read"):
        FileTool(str(workspace)).execute({"action": "read", "path": "nope.txt"})

def test_file_path_traversal_is_denied(workspace):
    tool = FileTool(str(workspace))
    with pytest.raises(ToolExecutionError, match="outside the project directory"):
        tool.execute({"action": "write", "path": "../escape.txt", "content": "x"})
    assert not (workspace.parent / "escape.txt").exists()

def test_file_write_requires_content(workspace):
    with pytest.raises(ToolExecutionError, match="Invalid parameters"):
        FileTool(str(workspace)).execute({"action": "write", "path": "a.txt"})

def test_file_unknown_action(workspace):
    with pytest.raises(ToolExecutionError):
        FileTool(str(workspace)).execute({"action": "delete", "path": "a.txt"})

# ---------------------------------------------------------------------------
# Command tool
# ---------------------------------------------------------------------------

def test_command_success_reports_metadata(workspace):
    result = CommandTool(str(workspace)).execute({"command": "echo hello"})
    assert result.success
    assert result.output == "hello"
    assert result.metadata["command"] == "echo hello"
    assert result.metadata["exit_code"] == 0
    assert result.metadata["duration"] >= 0

def test_command_runs_in_working_directory(workspace):
    (workspace / "marker.txt").write_text("")
    result = CommandTool(str(workspace)).execute({"command": "ls"})
    assert "marker.txt" in result.output

def test_command_nonzero_exit_is_failure(workspace):
    result = CommandTool(str(workspace)).execute({"command": "echo oops >&2; exit 3"})
    assert not result.success
    assert result.error == "Command exited with code 3"
    assert result.metadata["exit_code"] == 3
    assert "oops" in result.output

def test_command_timeout(workspace):
    result = CommandTool(str(workspace)).execute({"command": "sleep 3", "timeout": 1})
    assert not result.success
    assert "timed out" in result.error

def test_command_timeout_kills_child_processes(workspace):
    tool = CommandTool(str(workspace), timeout=1)
    result = tool.execute({"command": "(sleep 3 && echo late > marker.txt); true"})

    assert not result.success
    assert result.error == "Command timed out after 1s"
    time.sleep(3.5)
    assert not (workspace / "marker.txt").exists()

def test_command_cwd_inside_project(workspace):
    (workspace / "sub").mkdir()
    result = CommandTool(str(workspace)).execute({"command": "pwd", "cwd": "sub"})
    assert result.success
    assert result.output.endswith("/sub")

@pytest.mark.parametrize("cwd", ["..", "../..", "/"])
def test_command_cwd_outside_project_is_denied(workspace, cwd):
    with pytest.raises(ToolExecutionError, match="outside the project directory"):
        CommandTool(str(workspace)).execute({"command": "touch escaped.txt", "cwd": cwd})
    assert not (workspace.parent / "escaped.txt").exists()

def test_dangerous_command_blocked(workspace):
    with pytest.raises(ToolExecutionError, match="blocked for safety"):
        CommandTool(str(workspace)).execute({"command": "rm -rf / --no-preserve-root"})

def test_shell_commands_disabled(workspace):
    result = CommandTool(str(workspace), allow_shell_commands=False).execute({"command": "echo hi"})
    assert not result.success
    assert "disabled" in result.error

def test_command_requires_command(workspace):
    with pytest.raises(ToolExecutionError):
        CommandTool(str(workspace)).execute({"command": ""})

# ---------------------------------------------------------------------------
# Git tool
# ---------------------------------------------------------------------------

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


@pytest.fixture
def git_repo(workspace):
    for args in (
        ["git", "init", "-q"],
        ["git", "config", "user.email", "dev@example.com"],
        ["git", "config", "user.name", "Dev"],
        ["git", "config", "commit.gpgsign", "false"],
    ):
        subprocess.run(args, cwd=workspace, check=True, capture_output=True)
    return workspace


def test_parse_porcelain_status():
    stdout = "\n".join([
        "## main...origin/main [ahead 1]",
        " M src/app.py",
        "A  src/new.py",
        " D old.py",
        "R  before.py -> after.py",
        "?? notes.txt",
    ])
    status = parse_porcelain_status(stdout)
    assert status["branch"] == "main"
    assert status["modified"] == ["src/app.py", "after.py"]
    assert status["created"] == ["src/new.py"]
    assert status["deleted"] == ["old.py"]
    assert status["untracked"] == ["notes.txt"]

def test_parse_porcelain_status_fresh_repo():
    assert parse_porcelain_status("## No commits yet on main\n")["branch"] == "main"

@requires_git
def test_git_status_lists_untracked(git_repo):
    (git_repo / "a.txt").write_text("a")
    result = GitTool(str(git_repo)).execute({"action": "status"})
    assert result.success
    assert result.metadata["untracked"] == ["a.txt"]
    assert "? a.txt" in result.output
    assert result.metadata["command"] == "git status --porcelain --branch"

@requires_git
def test_git_commit_clean_tree_fails(git_repo):
    result = GitTool(str(git_repo)).execute({"action": "commit", "message": "nothing"})
    assert not result.success
    assert result.error == "Working directory is clean"

@requires_git
def test_git_commit_stages_everything(git_repo):
    (git_repo / "a.txt").write_text("a")
    (git_repo / "b.txt").write_text("b")
    result = GitTool(str(git_repo)).execute({"action": "commit", "message": "add files"})

    assert result.success, result.error
    assert result.metadata["files_committed"] == 2
    assert len(result.metadata["commit"]) == 40
    assert result.metadata["command"].startswith("git commit")

    log = subprocess.run(["git", "log", "--oneline"], cwd=git_repo, capture_output=True, text=True)
    assert "add files" in log.stdout

@requires_git
def test_git_branch_with_checkout(git_repo):
    (git_repo / "a.txt").write_text("a")
    tool = GitTool(str(git_repo))
    assert tool.execute({"action": "commit", "message": "init"}).success

    result = tool.execute({"operation": "branch", "branchName": "feature/x", "checkout": True})
    assert result.success, result.error
    head = subprocess.run(
        ["git", "rev-parse", "--abbrev-ref", "HEAD"], cwd=git_repo, capture_output=True, text=True
    )
    assert head.stdout.strip() == "feature/x"

@requires_git
def test_git_add_specific_files(git_repo):
    (git_repo / "a.txt").write_text("a")
    result = GitTool(str(git_repo)).execute({"action": "add", "files": ["a.txt"]})
    assert result.success
    assert result.metadata["files"] == ["a.txt"]

def test_git_push_disabled(workspace):
    with pytest.raises(ToolExecutionError, match="push is disabled"):
        GitTool(str(workspace), allow_git_push=False).execute({"action": "push"})

def test_git_commit_requires_message(workspace):
    with pytest.raises(ToolExecutionError, match="Invalid parameters"):
        GitTool(str(workspace)).execute({"action": "commit"})

# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------

def test_tool_manifest_lists_tools_and_params(tools):
    text = get_tool_manifest_text(tools)
    assert "**file** 🟡" in text
    assert "**command** 🔴" in text
    assert "**git** 🔴" in text
    assert '`action` ("read" | "write" | "patch", required)' in text
    assert "`content` (string, optional)" in text

def test_tool_definition_uses_json_schema(tools):
    definition = tools[0].to_definition()
    assert definition["name"] == "file"
    assert set(definition["parameters"]["required"]) == {"action", "path"}

def test_tool_manifest_renders_tool_definitions(tools):
    file_tool = tools[0]
    with patch.object(FileTool, "to_definition", wraps=file_tool.to_definition) as to_definition:
        text = get_tool_manifest_text([file_tool])

    to_definition.assert_called_once_with()
    assert text.startswith("Available tools:")
    assert "- **file** 🟡: Read, write, or patch files in the project directory" in text
