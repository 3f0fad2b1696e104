"""Push notification delivery and endpoint-token upkeep."""

from .dispatcher import FanoutResult, NotificationDispatcher
from .gateway import PushGateway
from .metrics import DispatchStats
from .models import DispatchOutcome, NotificationMessage, SendResponse
from .user_records import JsonUserRecordStore, UserRecordStore

__all__ = [
    "DispatchOutcome",
    "DispatchStats",
    "FanoutResult",
    "JsonUserRecordStore",
    "NotificationDispatcher",
    "NotificationMessage",
    "PushGateway",
    "SendResponse",
    "UserRecordStore",
]
