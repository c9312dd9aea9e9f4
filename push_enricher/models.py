"""Data models for notifications and alert details."""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

ACTION_ACTUATOR = "actuator"
ACTION_DEEP_LINK = "deep link"


@dataclass
class NotificationContent:
    """Mutable content of a delivered notification."""
    title: str = ""
    body: str = ""
    category_identifier: str = ""
    user_info: Dict[str, Any] = field(default_factory=dict)  # custom payload keys

    def mutable_copy(self) -> "NotificationContent":
        return copy.deepcopy(self)

    @classmethod
    def from_push_payload(cls, payload: Dict[str, Any]) -> "NotificationContent":
        """
        Build content from an APNs-style push payload.

        The ``aps`` dictionary supplies title, body and category; every other
        top-level key is kept in ``user_info``.

        Raises:
            ValueError: If the payload, ``aps`` or ``aps.alert`` has the wrong shape.
        """
        if not isinstance(payload, dict):
            raise ValueError("push payload is not an object")
        aps = payload.get("aps") or {}
        if not isinstance(aps, dict):
            raise ValueError("'aps' is not an object")
        alert = aps.get("alert") or {}
        if isinstance(alert, str):
            title, body = "", alert
        elif isinstance(alert, dict):
            title, body = alert.get("title", ""), alert.get("body", "")
        else:
            raise ValueError("'aps.alert' is neither a string nor an object")
        user_info = {key: value for key, value in payload.items() if key != "aps"}
        return cls(
            title=title,
            body=body,
            category_identifier=aps.get("category", ""),
            user_info=user_info,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "body": self.body,
            "category": self.category_identifier,
            "userInfo": self.user_info,
        }


@dataclass
class NotificationRequest:
    """A push notification handed over by the host."""
    identifier: str
    content: NotificationContent


class ActionOption(Enum):
    """Presentation options for a notification action button."""
    DESTRUCTIVE = "destructive"
    FOREGROUND = "foreground"


@dataclass(frozen=True)
class NotificationAction:
    identifier: str
    title: str
    options: tuple = ()  # ActionOption members

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identifier": self.identifier,
            "title": self.title,
            "options": [option.value for option in self.options],
        }


@dataclass(frozen=True)
class NotificationCategory:
    """A named set of actions the host shows with matching notifications."""
    identifier: str
    actions: tuple = ()
    intent_identifiers: tuple = ()
    options: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identifier": self.identifier,
            "actions": [action.to_dict() for action in self.actions],
        }


@dataclass
class AlertAction:
    """An action suggested by the server for an alert."""
    title: str
    type: str
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DetailRecord:
    """One element of the alert detail response."""
    title: str
    message: str
    app_url: Optional[str] = None
    id: Optional[Any] = None
    actions: List[AlertAction] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "DetailRecord":
        """
        Parse a detail record from decoded JSON.

        Raises:
            ValueError: If the element is not an object or a field has the wrong shape.
        """
        if not isinstance(data, dict):
            raise ValueError("detail record is not an object")
        title = data.get("title")
        message = data.get("message")
        if not isinstance(title, str) or not isinstance(message, str):
            raise ValueError("detail record needs string 'title' and 'message'")

        raw_actions = data.get("actions")
        if raw_actions is None:
            raw_actions = []
        if not isinstance(raw_actions, list):
            raise ValueError("'actions' is not a list")

        actions = []
        for raw in raw_actions:
            if not isinstance(raw, dict):
                raise ValueError("action is not an object")
            action_title = raw.get("title")
            action_type = raw.get("type")
            if not isinstance(action_title, str) or not isinstance(action_type, str):
                raise ValueError("action needs string 'title' and 'type'")
            actions.append(AlertAction(title=action_title, type=action_type, raw=raw))

        return cls(
            title=title,
            message=message,
            app_url=data.get("appUrl"),
            id=data.get("id"),
            actions=actions,
        )
