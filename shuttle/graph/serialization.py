"""
Serializable type registry.

Run state that may be checkpointed is registered once per process under a
stable tag. `serialize` / `deserialize` go through pydantic TypeAdapters, so
dataclasses holding pydantic messages round-trip as JSON-compatible dicts.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Type

from pydantic import TypeAdapter

from shuttle.core.errors import ConfigurationError, ShuttleError

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_by_tag: Dict[str, Type] = {}
_by_type: Dict[Type, str] = {}
_adapters: Dict[Type, TypeAdapter] = {}


def register_serializable_type(cls: Type, tag: str) -> None:
    """Register `cls` under `tag`. Re-registering the same pair is a no-op."""
    with _lock:
        existing = _by_tag.get(tag)
        if existing is cls:
            return
        if existing is not None:
            raise ConfigurationError(
                f"type tag '{tag}' is already registered for {existing.__qualname__}"
            )
        if cls in _by_type:
            raise ConfigurationError(
                f"{cls.__qualname__} is already registered as '{_by_type[cls]}'"
            )
        _by_tag[tag] = cls
        _by_type[cls] = tag
        _adapters[cls] = TypeAdapter(cls)
    logger.debug("Registered serializable type %s as %s", cls.__qualname__, tag)


def is_registered(cls: Type) -> bool:
    with _lock:
        return cls in _by_type


def serialize(obj: Any) -> Dict[str, Any]:
    cls = type(obj)
    with _lock:
        tag = _by_type.get(cls)
        adapter = _adapters.get(cls)
    if tag is None:
        raise ShuttleError(f"{cls.__qualname__} is not a registered serializable type")
    return {"type": tag, "data": adapter.dump_python(obj, mode="json")}


def deserialize(payload: Dict[str, Any]) -> Any:
    tag = payload.get("type")
    with _lock:
        cls = _by_tag.get(tag)
        adapter = _adapters.get(cls) if cls is not None else None
    if adapter is None:
        raise ShuttleError(f"unknown serializable type tag: {tag!r}")
    return adapter.validate_python(payload.get("data"))
