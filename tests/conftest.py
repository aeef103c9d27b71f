import json

import pytest

from codeloop.agent import Agent, AgentConfig, Executor, Planner, StepIterator
from codeloop.llm import Completion
from codeloop.tools import CommandTool, FileTool, GitTool

UNFIXABLE = json.dumps({"reasoning": "cannot be fixed", "modified_params": None})


class FakeCompletionClient:
    """Scripted completion client. Items may be strings or exceptions."""

    def __init__(self, responses=(), default=None):
        self.responses = list(responses)
        self.default = default
        self.calls = []

    def generate_completion(self, system_prompt, prompt, max_tokens=None, temperature=None):
        self.calls.append({
            "system_prompt": system_prompt,
            "prompt": prompt,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        if self.responses:
            item = self.responses.pop(0)
        elif self.default is not None:
            item = self.default
        else:
            raise AssertionError("unexpected completion request")

        if isinstance(item, Exception):
            raise item
        return Completion(text=item)


def plan_json(*steps, reasoning="test plan"):
    return json.dumps({"reasoning": reasoning, "steps": list(steps)})


def step(step_id, tool, description="", **params):
    return {
        "id": step_id,
        "description": description or f"{tool} {step_id}",
        "tool": tool,
        "params": params,
        "dependencies": [],
    }


def fix_json(reasoning="retry with new params", **params):
    return json.dumps({"reasoning": reasoning, "modified_params": params})


@pytest.fixture
def workspace(tmp_path):
    ws = tmp_path / "project"
    ws.mkdir()
    return ws


@pytest.fixture
def tools(workspace):
    return [
        FileTool(str(workspace)),
        CommandTool(str(workspace), allow_shell_commands=True, timeout=10),
        GitTool(str(workspace), allow_git_push=False, timeout=10),
    ]


@pytest.fixture
def make_agent(workspace, tools):
    def _make(
        responses,
        default=None,
        autonomous=False,
        preview_mode=False,
        max_iterations=10,
        max_retries=3,
        cancel_event=None,
    ):
        client = FakeCompletionClient(responses, default=default)
        agent = Agent(
            planner=Planner(client, tools),
            executor=Executor(tools),
            iterator=StepIterator(client, max_retries=max_retries),
            config=AgentConfig(
                task_id="task-test",
                autonomous=autonomous,
                preview_mode=preview_mode,
                max_iterations=max_iterations,
                working_directory=str(workspace),
            ),
            cancel_event=cancel_event,
        )
        return agent, client

    return _make
