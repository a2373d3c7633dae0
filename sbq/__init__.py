"""sbq: command-line client for session-aware Service Bus queues."""

__version__ = "0.1.0"
BUILD_DATE = "unknown"
