"""Database models — re-exports all models.

Import from here:  from connections_digest.models import ConnectionRequest, ...
Or from submodules: from connections_digest.models.people import Person
"""

from .base import Base, UTCDateTime  # noqa: F401

# Enumerations
from .enums import CommunicationType, ConnectionState, GroupMemberStatus  # noqa: F401

# People & Groups
from .people import Group, GroupMember, Person, PersonAlias  # noqa: F401

# Connections
from .connections import (  # noqa: F401
    ConnectionOpportunity,
    ConnectionRequest,
    ConnectionRequestActivity,
    ConnectionStatus,
    ConnectionType,
)

# Communications
from .communication import SystemCommunication  # noqa: F401

# Jobs
from .jobs import ServiceJob  # noqa: F401
