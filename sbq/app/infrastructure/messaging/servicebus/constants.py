"""Service Bus gateway lifecycle states and error markers."""
from enum import Enum

# AMQP error condition the service returns when no session could be accepted in time.
SESSION_TIMEOUT_MARKER = "com.microsoft:timeout"


class GatewayState(str, Enum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTED = "CONNECTED"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"
