from shuttle.utils.stream_accumulator import MessageAccumulator, concat_messages

__all__ = ["MessageAccumulator", "concat_messages"]
