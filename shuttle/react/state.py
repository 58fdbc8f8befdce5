from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import List

from shuttle.core.message import Message
from shuttle.graph.serialization import register_serializable_type

STATE_TYPE_TAG = "_shuttle_react_state"


@dataclass
class ConversationState:
    """State of one ReAct run."""

    # transcript fed to the model, causal order, append-only
    history: List[Message] = field(default_factory=list)
    # id of the tool call whose result ends the run; "" when none is pending
    pending_direct_return_id: str = ""


_register_lock = threading.Lock()
_registered = False


def register_state_type() -> None:
    """Register ConversationState for checkpoint serialization, once per process."""
    global _registered
    with _register_lock:
        if _registered:
            return
        register_serializable_type(ConversationState, STATE_TYPE_TAG)
        _registered = True
