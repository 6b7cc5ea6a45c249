"""
Custody Event Bus — Errors
============================
Registration errors only. A failing subscriber is reported by the
dispatcher, not raised.
"""


class EventBusError(Exception):
    pass


class InvalidEventTypeFormat(EventBusError):
    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(
            f"'{event_type}' is not a versioned notification type "
            f"(expected engine.domain.action.vN)."
        )


class DuplicateSubscriberError(EventBusError):
    def __init__(self, event_type: str, handler_name: str):
        self.event_type = event_type
        self.handler_name = handler_name
        super().__init__(f"{handler_name} already listens to {event_type}.")


class SelfSubscriptionError(EventBusError):
    def __init__(self, engine: str, event_type: str):
        self.engine = engine
        self.event_type = event_type
        super().__init__(
            f"{engine} may not listen to its own {event_type} "
            f"unless allow_self_subscription is set."
        )
