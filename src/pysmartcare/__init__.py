"""pysmartcare - Async Python client for SmartCare messaging and notifications."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pysmartcare")
except PackageNotFoundError:
    __version__ = "0+local"
from pysmartcare._channel import ChannelState
from pysmartcare.client import SmartCareClient
from pysmartcare.config import SmartCareConfig
from pysmartcare.exceptions import (
    MalformedPayloadError,
    SmartCareApiError,
    SmartCareAuthenticationError,
    SmartCareConfigError,
    SmartCareError,
    SmartCareStreamError,
    SmartCareTransportError,
)
from pysmartcare.models import (
    Conversation,
    Message,
    Notification,
    NotificationKind,
    ParticipantDetail,
)
from pysmartcare.sync import SyncSession

__all__ = [
    "__version__",
    "ChannelState",
    "Conversation",
    "MalformedPayloadError",
    "Message",
    "Notification",
    "NotificationKind",
    "ParticipantDetail",
    "SmartCareApiError",
    "SmartCareAuthenticationError",
    "SmartCareClient",
    "SmartCareConfig",
    "SmartCareConfigError",
    "SmartCareError",
    "SmartCareStreamError",
    "SmartCareTransportError",
    "SyncSession",
]
