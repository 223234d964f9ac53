from .event_sink import EventSink, LoggingEventSink, UserLoginSuccessEvent

__all__ = ["EventSink", "LoggingEventSink", "UserLoginSuccessEvent"]
