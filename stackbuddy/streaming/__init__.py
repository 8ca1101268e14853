"""
StackBuddy Streaming - Streamed completion exchanges

Provides:
- StreamingCoordinator: one streamed exchange, plus the multi-part variant
- StreamCallbacks / StreamOutcome: caller hooks and exchange result
- DelayedResponse: one-shot handle for the final multi-part message
"""

from .models import (
    DelayedResponse,
    StreamCallbacks,
    StreamOutcome,
    call_hook,
    maybe_await,
)
from .coordinator import StreamingCoordinator, build_messages

__all__ = [
    "DelayedResponse",
    "StreamCallbacks",
    "StreamOutcome",
    "call_hook",
    "maybe_await",
    "StreamingCoordinator",
    "build_messages",
]
