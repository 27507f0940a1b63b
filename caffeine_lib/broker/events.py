"""Change events published after successful mutations."""
from __future__ import annotations
import enum
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional


class EventKind(str, enum.Enum):
    ITEM_ADDED = "ITEM_ADDED"
    ITEM_DELETED = "ITEM_DELETED"
    NAMESPACE_DELETED = "NAMESPACE_DELETED"


@dataclass(frozen=True)
class ChangeEvent:
    event: EventKind
    namespace: str
    key: str = ""
    user: Optional[str] = None
    value: Any = None

    @classmethod
    def item_added(cls, namespace: str, key: str, value: Any, user: Optional[str] = None) -> "ChangeEvent":
        return cls(EventKind.ITEM_ADDED, namespace, key, user, value)

    @classmethod
    def item_deleted(cls, namespace: str, key: str, user: Optional[str] = None) -> "ChangeEvent":
        return cls(EventKind.ITEM_DELETED, namespace, key, user)

    @classmethod
    def namespace_deleted(cls, namespace: str, user: Optional[str] = None) -> "ChangeEvent":
        return cls(EventKind.NAMESPACE_DELETED, namespace, "", user)

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape: `key` only for item events, `value` only for ITEM_ADDED."""
        out: Dict[str, Any] = {"event": self.event.value}
        if self.user:
            out["user"] = self.user
        out["namespace"] = self.namespace
        if self.event is not EventKind.NAMESPACE_DELETED:
            out["key"] = self.key
        if self.event is EventKind.ITEM_ADDED:
            out["value"] = self.value
        return out

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))
