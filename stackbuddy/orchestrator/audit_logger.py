"""
Structured audit logging for monitor and tool decisions.

Produces JSON log entries via Python's standard logging module under
the ``stackbuddy.audit`` logger name.  Each entry includes a timestamp,
event_type, optional conversation_id, and event-specific fields.

Usage::

    audit = AuditLogger()
    audit.log_monitor_transition(
        conversation_id="conv-1",
        session_id="a1b2",
        from_state="active",
        to_state="settled",
        reason="tools_settled",
    )
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

_audit_logger = logging.getLogger("stackbuddy.audit")


class AuditLogger:
    """Structured audit logger for completion monitor and tool events."""

    def __init__(self, conversation_id: Optional[str] = None) -> None:
        self._default_conversation_id = conversation_id

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _emit(self, event_type: str, fields: Dict[str, Any]) -> None:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type,
        }
        entry.update(fields)
        _audit_logger.info(json.dumps(entry, default=str))

    def _cid(self, conversation_id: Optional[str] = None) -> str:
        return conversation_id or self._default_conversation_id or ""

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------

    def log_monitor_transition(
        self,
        conversation_id: Optional[str],
        session_id: str,
        from_state: str,
        to_state: str,
        reason: str,
        elapsed_s: Optional[float] = None,
    ) -> None:
        """Log a completion monitor state change."""
        fields: Dict[str, Any] = {
            "conversation_id": self._cid(conversation_id),
            "session_id": session_id,
            "from_state": from_state,
            "to_state": to_state,
            "reason": reason,
        }
        if elapsed_s is not None:
            fields["elapsed_s"] = round(elapsed_s, 3)
        self._emit("monitor_transition", fields)

    def log_final_delivery(
        self,
        conversation_id: Optional[str],
        session_id: str,
        message_id: str,
        source: str,
        tool_count: int,
    ) -> None:
        """Log the single final response of a session."""
        self._emit("final_delivery", {
            "conversation_id": self._cid(conversation_id),
            "session_id": session_id,
            "message_id": message_id,
            "source": source,
            "tool_count": tool_count,
        })

    def log_status_update(
        self,
        conversation_id: Optional[str],
        session_id: str,
        status: str,
    ) -> None:
        """Log an interim status message."""
        self._emit("status_update", {
            "conversation_id": self._cid(conversation_id),
            "session_id": session_id,
            "status": status,
        })

    def log_tool_result(
        self,
        tool_name: str,
        arg_keys: List[str],
        success: bool,
        duration_ms: int,
        error_items: Optional[List[str]] = None,
        conversation_id: Optional[str] = None,
    ) -> None:
        """Log a tool execution result."""
        fields: Dict[str, Any] = {
            "conversation_id": self._cid(conversation_id),
            "tool_name": tool_name,
            "arg_keys": arg_keys,
            "success": success,
            "duration_ms": duration_ms,
        }
        if error_items:
            fields["error_items"] = error_items
        self._emit("tool_result", fields)
