"""Internal constants shared across the library."""

BASE_URL = "http://localhost:5056/api"
USER_AGENT = "pysmartcare"

#: Fixed delay between push-channel reconnect attempts, in seconds.
RECONNECT_DELAY_SECONDS: float = 5.0

# ------------------------------------------------------------------
# REST endpoints (relative to the configured base URL)
# ------------------------------------------------------------------

CONVERSATIONS_BY_USER = "/conversations/user/{identity}"
MESSAGES_BY_USER = "/messages/user/{identity}"
MESSAGES = "/messages"
MESSAGES_READ = "/messages/{conversation_id}/read"
MESSAGE_READ = "/messages/{conversation_id}/read/{message_id}"

NOTIFICATIONS_BY_USER = "/notifications/user/{identity}"
NOTIFICATIONS = "/notifications"
NOTIFICATION = "/notifications/{notification_id}"
NOTIFICATION_READ = "/notifications/{notification_id}/read"
NOTIFICATIONS_READ_ALL = "/notifications/mark-all-read"

# ------------------------------------------------------------------
# Live update channels (Server-Sent Events)
# ------------------------------------------------------------------

MESSAGES_CONNECT = "/messages/connect/{identity}"
NOTIFICATIONS_CONNECT = "/notifications/connect/{identity}"
