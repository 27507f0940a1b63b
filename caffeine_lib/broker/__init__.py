from .broker import ChangeBroker, Subscription
from .events import ChangeEvent, EventKind

__all__ = ["ChangeBroker", "Subscription", "ChangeEvent", "EventKind"]
