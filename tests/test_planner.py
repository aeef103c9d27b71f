import json

import pytest

from codeloop.agent import ExecutionContext, Planner
from codeloop.errors import LLMError, PlanningError
from tests.conftest import FakeCompletionClient, plan_json, step


@pytest.fixture
def context(workspace):
    return ExecutionContext(goal="test", working_directory=str(workspace))


def make_planner(tools, *responses):
    client = FakeCompletionClient(responses)
    return Planner(client, tools), client

# ---------------------------------------------------------------------------
# Successful plans
# ---------------------------------------------------------------------------

def test_create_plan_keeps_model_order(tools, context):
    planner, client = make_planner(
        tools,
        plan_json(
            step("s1", "file", action="read", path="README.md"),
            step("s2", "command", command="ls"),
            step("s3", "git", action="status"),
            reasoning="look around",
        ),
    )

    plan = planner.create_plan("inspect the repo", context)

    assert [s.id for s in plan.steps] == ["s1", "s2", "s3"]
    assert [s.tool for s in plan.steps] == ["file", "command", "git"]
    assert plan.reasoning == "look around"
    assert plan.estimated_steps == 3
    assert all(s.status.value == "pending" for s in plan.steps)
    assert len(client.calls) == 1

def test_create_plan_uses_low_temperature_and_token_cap(tools, context):
    planner, client = make_planner(tools, plan_json())
    planner.create_plan("nothing", context)

    call = client.calls[0]
    assert call["temperature"] == 0.3
    assert call["max_tokens"] == 2000
    assert "**file**" in call["system_prompt"]
    assert "Goal: nothing" in call["prompt"]

def test_create_plan_accepts_fenced_output(tools, context):
    body = plan_json(step("s1", "command", command="echo hi"))
    planner, _ = make_planner(tools, f"Here is the plan:\n```json\n{body}\n```")

    plan = planner.create_plan("say hi", context)
    assert plan.steps[0].params == {"command": "echo hi"}

def test_create_plan_assigns_missing_ids(tools, context):
    raw = json.dumps({
        "reasoning": "",
        "steps": [
            {"description": "list", "tool": "command", "parameters": {"command": "ls"}},
            {"id": 7, "description": "status", "tool": "git", "params": {"action": "status"}},
            {"description": "pwd", "tool": "command", "args": {"command": "pwd"}},
        ],
    })
    planner, _ = make_planner(tools, raw)

    plan = planner.create_plan("ids", context)
    assert [s.id for s in plan.steps] == ["step-1", "7", "step-3"]
    assert plan.steps[0].params == {"command": "ls"}
    assert plan.steps[2].params == {"command": "pwd"}

def test_empty_plan_is_valid(tools, context):
    planner, _ = make_planner(tools, plan_json(reasoning="already done"))
    plan = planner.create_plan("noop", context)
    assert plan.steps == ()
    assert context.logs[-1].message == "Plan created with 0 steps"

def test_related_context_is_added_to_prompt(tools, context):
    planner, client = make_planner(tools, plan_json())
    planner.create_plan("fix tests", context, related_context=["previous run used pytest -x"])

    prompt = client.calls[0]["prompt"]
    assert "## Related context" in prompt
    assert "previous run used pytest -x" in prompt

def test_prompt_without_related_context(tools, context):
    planner, client = make_planner(tools, plan_json())
    planner.create_plan("fix tests", context)
    assert "Related context" not in client.calls[0]["prompt"]

# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

def test_malformed_output_raises_planning_error(tools, context):
    planner, _ = make_planner(tools, "I think you should edit some files.")

    with pytest.raises(PlanningError, match="Planning failed"):
        planner.create_plan("do things", context)

    assert context.logs[-1].level == "error"
    assert context.logs[-1].message == "Failed to create plan"

def test_missing_steps_key_raises(tools, context):
    planner, _ = make_planner(tools, json.dumps({"reasoning": "no steps"}))
    with pytest.raises(PlanningError):
        planner.create_plan("do things", context)

def test_unknown_tool_raises(tools, context):
    planner, _ = make_planner(tools, plan_json(step("s1", "browser", url="https://example.com")))
    with pytest.raises(PlanningError, match="unknown tool: browser"):
        planner.create_plan("browse", context)

def test_invalid_params_raise(tools, context):
    planner, _ = make_planner(tools, plan_json(step("s1", "file", action="write")))
    with pytest.raises(PlanningError, match="invalid params for 'file'"):
        planner.create_plan("write", context)

def test_duplicate_ids_raise(tools, context):
    planner, _ = make_planner(
        tools,
        plan_json(
            step("s1", "command", command="ls"),
            step("s1", "command", command="pwd"),
        ),
    )
    with pytest.raises(PlanningError, match="Duplicate step id"):
        planner.create_plan("dupes", context)

def test_completion_failure_raises_planning_error(tools, context):
    planner, _ = make_planner(tools, LLMError("rate limited"))
    with pytest.raises(PlanningError, match="rate limited"):
        planner.create_plan("anything", context)
