class ShuttleError(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigurationError(ShuttleError):
    pass


class GraphCompileError(ConfigurationError):
    pass


class ToolCallDetectionError(ShuttleError):
    pass


class NodeExecutionError(ShuttleError):
    """A model or tool node failed; the original exception is chained."""

    def __init__(self, node: str, message: str) -> None:
        self.node = node
        super().__init__(f"node '{node}' failed: {message}")


class ToolNotFoundError(ShuttleError):
    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"tool '{tool_name}' is not registered")


class ToolArgumentsError(ShuttleError):
    pass


class NoValueError(ShuttleError):
    pass


class MaxStepsExceededError(ShuttleError):
    def __init__(self, max_steps: int) -> None:
        self.max_steps = max_steps
        super().__init__(f"exceeded max steps ({max_steps})")


class StreamConcatError(ShuttleError):
    pass
