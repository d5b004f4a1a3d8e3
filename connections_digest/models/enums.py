"""Enumerations shared by models, schemas and services."""

import enum


class CommunicationType(enum.IntEnum):
    """Delivery medium. Integer values match the legacy job attribute codes."""

    RECIPIENT_PREFERENCE = 0
    EMAIL = 1
    SMS = 2
    PUSH_NOTIFICATION = 3


class ConnectionState(enum.Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    FUTURE_FOLLOW_UP = "FutureFollowUp"
    CONNECTED = "Connected"


class GroupMemberStatus(enum.Enum):
    INACTIVE = "Inactive"
    ACTIVE = "Active"
    PENDING = "Pending"
