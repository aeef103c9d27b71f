"""Agent orchestration loop: Planner, Executor, StepIterator, Agent."""

from .agent import Agent, AgentConfig, create_agent
from .context import CommandRecord, ExecutionContext, LogEntry
from .executor import Executor
from .iterator import StepIterator
from .parsing import parse_structured_output
from .planner import Planner
from .result import AgentResult
from .schemas import Plan, PlanStep, StepStatus, TaskRecord, TaskStatus
from .state import AgentState, AgentStatus

__all__ = [
    "Agent",
    "AgentConfig",
    "AgentResult",
    "AgentState",
    "AgentStatus",
    "CommandRecord",
    "ExecutionContext",
    "Executor",
    "LogEntry",
    "Plan",
    "PlanStep",
    "Planner",
    "StepIterator",
    "StepStatus",
    "TaskRecord",
    "TaskStatus",
    "create_agent",
    "parse_structured_output",
]
