from typing import (
    TypeVar, Generic, Optional, AsyncGenerator,
    Dict, Any, Callable, List
)
from abc import abstractmethod, ABC
from dataclasses import dataclass, field
import asyncio
import inspect


InputT = TypeVar('InputT', contravariant=True)
OutputT = TypeVar('OutputT', covariant=True)


@dataclass
class RunnableConfig:
    """Per-run options shared by every component of one run."""
    # Execution control
    max_concurrency: Optional[int] = None
    timeout: Optional[float] = None  # seconds

    # Context propagation
    metadata: Dict[str, Any] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)
    run_id: Optional[str] = None

    # Callback system: callback(event, node_key, payload)
    callbacks: List[Callable] = field(default_factory=list)

    async def emit(self, event: str, node: str, payload: Any = None) -> None:
        for callback in self.callbacks:
            result = callback(event, node, payload)
            if inspect.isawaitable(result):
                await result


class Runnable(ABC, Generic[InputT, OutputT]):
    """
    Base abstract class for all executable components.

    Philosophy:
    - Single Responsibility: Only defines execution interface
    - Type Safety: Generics support input/output type constraints
    - Composable: models, tools and compiled graphs share one protocol
    """

    @abstractmethod
    async def invoke(
        self,
        input: InputT,
        config: Optional[RunnableConfig] = None,
        **kwargs
    ) -> OutputT:
        """
        Execute the runnable.

        Args:
            input: Input data
            config: Runtime configuration
            **kwargs: Additional arguments

        Returns:
            Output data
        """
        ...

    async def stream(
        self,
        input: InputT,
        config: Optional[RunnableConfig] = None,
        **kwargs
    ) -> AsyncGenerator[OutputT, None]:
        """
        Stream the execution output.
        Default implementation returns result as a single chunk.

        Yields:
            Output chunks
        """
        result = await self.invoke(input, config, **kwargs)
        yield result

    async def batch(
        self,
        inputs: List[InputT],
        config: Optional[RunnableConfig] = None,
        **kwargs
    ) -> List[OutputT]:
        """
        Execute a batch of inputs.

        Returns:
            List of outputs (preserving order)
        """
        if config and config.max_concurrency:
            semaphore = asyncio.Semaphore(config.max_concurrency)

            async def _execute_with_limit(inp):
                async with semaphore:
                    return await self.invoke(inp, config, **kwargs)

            return await asyncio.gather(*[_execute_with_limit(inp) for inp in inputs])
        return await asyncio.gather(*[self.invoke(inp, config, **kwargs) for inp in inputs])


class Lambda(Runnable[Any, Any]):
    """
    Wraps a plain (sync or async) function as a Runnable.

    Example:
        upper = Lambda(lambda text: text.upper())
        await upper.invoke("hi")  # "HI"
    """

    def __init__(self, func: Callable[..., Any], name: Optional[str] = None):
        self.func = func
        self.name = name or getattr(func, "__name__", "lambda")

    async def invoke(self, input: Any, config: Optional[RunnableConfig] = None, **kwargs) -> Any:
        result = self.func(input, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return f"Lambda({self.name})"
