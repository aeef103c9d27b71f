"""Exception hierarchy.

Tool-level failures are data (``ExecutionResult``); only run-level
conditions are raised past the Executor.
"""


class CodeLoopError(Exception):
    """Base class for all codeloop errors."""


class ConfigurationError(CodeLoopError):
    """Invalid or missing configuration."""


class LLMError(CodeLoopError):
    """The completion API call failed."""


class PlanningError(CodeLoopError):
    """No usable plan could be produced. Always fatal for the run."""


class ToolExecutionError(CodeLoopError):
    """Raised inside a tool; the Executor downgrades it to a failure result."""

    def __init__(self, message: str, tool_name: str):
        super().__init__(message)
        self.tool_name = tool_name


class AgentError(CodeLoopError):
    """Run-level failure: unrecoverable step, iteration ceiling, cancellation.

    ``result`` holds the ``AgentResult`` of the aborted run (logs, completed
    and failed steps) when the run got past planning.
    """

    def __init__(self, message: str, result=None):
        super().__init__(message)
        self.result = result


class StructuredOutputError(CodeLoopError, ValueError):
    """Model output could not be parsed into a JSON object."""
