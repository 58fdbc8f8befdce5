"""
Single-pass stream reader.

A StreamReader wraps an async iterator of chunks. It can be read exactly once;
`copy(n)` splits it into n independent readers over the same source so that,
for example, a branch condition and the next node can both consume one model
turn. The source is released when every reader has been closed.
"""

from __future__ import annotations

import asyncio
from typing import (
    Any, AsyncIterator, Callable, Generic, Iterable, List, Optional, TypeVar
)

from shuttle.core.errors import StreamConcatError

T = TypeVar("T")


class _TeeSource(Generic[T]):
    """Shared buffer behind the readers produced by `StreamReader.copy`."""

    def __init__(self, source: "StreamReader[T]", n: int):
        self._source = source
        self._buffer: List[T] = []
        self._done = False
        self._error: Optional[BaseException] = None
        self._lock = asyncio.Lock()
        self._open = n

    async def get(self, pos: int) -> T:
        async with self._lock:
            while pos >= len(self._buffer):
                if self._error is not None:
                    raise self._error
                if self._done:
                    raise StopAsyncIteration
                try:
                    item = await self._source.__anext__()
                except StopAsyncIteration:
                    self._done = True
                    continue
                except Exception as e:
                    self._error = e
                    raise
                self._buffer.append(item)
            return self._buffer[pos]

    async def release(self) -> None:
        self._open -= 1
        if self._open == 0:
            await self._source.aclose()


class StreamReader(Generic[T]):
    """
    Async, single-pass reader of stream chunks.

    Example:
        async with reader:
            async for chunk in reader:
                ...
    """

    def __init__(self, source: AsyncIterator[T]):
        self._source = source
        self._closed = False

    # ----- constructors -----

    @classmethod
    def from_iterable(cls, items: Iterable[T]) -> "StreamReader[T]":
        async def _gen():
            for item in items:
                yield item
        return cls(_gen())

    @classmethod
    def from_value(cls, value: T) -> "StreamReader[T]":
        return cls.from_iterable([value])

    # ----- reading -----

    def __aiter__(self) -> "StreamReader[T]":
        return self

    async def __anext__(self) -> T:
        if self._closed:
            raise StopAsyncIteration
        return await self._source.__anext__()

    async def recv(self) -> T:
        """Return the next chunk; raises StopAsyncIteration at the end."""
        return await self.__anext__()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        aclose = getattr(self._source, "aclose", None)
        if aclose is not None:
            await aclose()

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> "StreamReader[T]":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ----- combinators -----

    def copy(self, n: int) -> List["StreamReader[T]"]:
        """Split into n readers; this reader must not be used afterwards."""
        if n < 2:
            return [self]
        tee = _TeeSource(self, n)
        return [StreamReader(_TeeChild(tee)) for _ in range(n)]


class _TeeChild(Generic[T]):
    def __init__(self, tee: _TeeSource[T]):
        self._tee = tee
        self._pos = 0
        self._released = False

    def __aiter__(self):
        return self

    async def __anext__(self) -> T:
        item = await self._tee.get(self._pos)
        self._pos += 1
        return item

    async def aclose(self) -> None:
        if not self._released:
            self._released = True
            await self._tee.release()


def concat_chunks(chunks: List[Any], concat: Optional[Callable[[List[Any]], Any]] = None) -> Any:
    """
    Merge the chunks of one stream into a single value.

    A single chunk is returned as is. Messages are merged with
    `concat_messages`, strings are joined; anything else needs `concat`.
    """
    if not chunks:
        raise StreamConcatError("cannot concat an empty stream")
    if len(chunks) == 1:
        return chunks[0]
    if concat is not None:
        return concat(chunks)

    # local import: stream_accumulator depends on core.message
    from shuttle.core.message import BaseMessage
    from shuttle.utils.stream_accumulator import concat_messages

    if all(isinstance(c, BaseMessage) for c in chunks):
        return concat_messages(chunks)
    if all(isinstance(c, str) for c in chunks):
        return "".join(chunks)
    raise StreamConcatError(f"cannot concat chunks of type {type(chunks[0]).__name__}")


async def concat_stream(reader: StreamReader[Any], concat: Optional[Callable[[List[Any]], Any]] = None) -> Any:
    """Drain and release a reader, then merge its chunks with `concat_chunks`."""
    async with reader:
        chunks = [chunk async for chunk in reader]
    return concat_chunks(chunks, concat)
