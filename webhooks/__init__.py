"""
Webhooks package initialization.
Exposes PayPal webhook verification and event dispatch.
"""

from .dispatcher import DispatchResult, EventDispatcher, EventSink, LoggingEventSink
from .verifier import WebhookVerifier

__all__ = [
    "DispatchResult",
    "EventDispatcher",
    "EventSink",
    "LoggingEventSink",
    "WebhookVerifier",
]
