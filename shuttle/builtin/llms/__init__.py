from shuttle.builtin.llms.base import BaseChatModel
from shuttle.builtin.llms.mock import MockChatModel

__all__ = ["BaseChatModel", "MockChatModel"]
