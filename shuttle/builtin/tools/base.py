from typing import Any, Dict, Type, Optional, Callable, get_type_hints
from abc import abstractmethod
import inspect
from pydantic import BaseModel, Field, create_model
from shuttle.core.runnable import Runnable, RunnableConfig


class ToolInfo(BaseModel):
    """Descriptor handed to the chat model for one tool."""
    name: str
    description: str = ""
    parameters: Dict[str, Any] = Field(default_factory=dict)  # JSON schema

    def to_openai_schema(self) -> Dict[str, Any]:
        """OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            }
        }


class BaseTool(Runnable[Dict[str, Any], str]):
    """
    Base class for Tools.

    Philosophy:
    - Tool is also a Runnable
    - Input: Dict (tool arguments, already JSON-decoded)
    - Output: str (tool result)
    """

    name: str
    description: str
    args_schema: Type[BaseModel]  # Pydantic schema

    async def info(self) -> ToolInfo:
        """Describe the tool for the model's tool catalog."""
        return ToolInfo(
            name=self.name,
            description=self.description,
            parameters=self.args_schema.model_json_schema(),
        )

    @abstractmethod
    async def invoke(
        self,
        input: Dict[str, Any],
        config: Optional[RunnableConfig] = None,
        **kwargs
    ) -> str:
        """Execute the tool."""
        ...


class FunctionTool(BaseTool):
    """
    Wraps a plain Python function as a Tool.

    Example:
        def search_web(query: str, max_results: int = 10) -> str:
            '''Search the web'''
            return f"Results for {query}"

        tool = FunctionTool.from_function(search_web)
    """

    def __init__(self, func: Callable, name: str = None, description: str = None):
        self.func = func
        self.name = name or func.__name__
        self.description = description or (func.__doc__ or "").strip()

        # Automatically generate Pydantic schema
        self.args_schema = self._create_schema_from_function(func)

    @staticmethod
    def _create_schema_from_function(func: Callable) -> Type[BaseModel]:
        """Generate schema via inspection."""
        sig = inspect.signature(func)
        hints = get_type_hints(func)

        fields = {}
        for param_name, param in sig.parameters.items():
            if param_name == "self":
                continue

            param_type = hints.get(param_name, Any)
            default = param.default if param.default is not inspect.Parameter.empty else ...
            fields[param_name] = (param_type, default)

        return create_model(f"{func.__name__}_Schema", **fields)

    async def invoke(self, input: Dict[str, Any], config=None, **kwargs) -> str:
        # Validate arguments
        validated = self.args_schema(**input)

        result = self.func(**validated.model_dump())

        # Async support
        if inspect.iscoroutine(result):
            result = await result

        return str(result)

    @classmethod
    def from_function(cls, func: Callable) -> "FunctionTool":
        """Factory method."""
        return cls(func)


def tool(func: Callable = None, *, name: str = None, description: str = None):
    """
    Decorator form of FunctionTool.

    Example:
        @tool
        async def search(query: str) -> str: ...

        @tool(name="calc")
        def add(a: int, b: int) -> int: ...
    """
    def wrap(f: Callable) -> FunctionTool:
        return FunctionTool(f, name=name, description=description)

    if func is None:
        return wrap
    return wrap(func)
