"""
StackBuddy Tool Executor - Execute a single tool and normalize its outcome

The executor never raises: unknown tools and handler failures are converted
into ``ToolResult(is_success=False, error_items=[...])``.
"""

import logging
import time
from typing import Any, Dict, Optional, TYPE_CHECKING

from ..errors import ToolInvocationError, UnknownToolError
from .catalog import ToolCatalog
from .models import ToolInvocation, ToolResult, ToolStatus
from .status import ToolStatusTracker

if TYPE_CHECKING:
    from ..orchestrator.audit_logger import AuditLogger

logger = logging.getLogger(__name__)


class ToolExecutor:
    """
    Invokes one named tool from a catalog.

    Usage:
        executor = ToolExecutor(catalog)
        result = await executor.execute("fieldRemove", {"fieldId": "123"}, tracker)
        if not result.is_success:
            print(result.error_items)
    """

    def __init__(self, catalog: ToolCatalog, audit: Optional["AuditLogger"] = None):
        self.catalog = catalog
        self.audit = audit

    async def execute(
        self,
        tool_name: str,
        arguments: Optional[Dict[str, Any]] = None,
        tracker: Optional[ToolStatusTracker] = None,
        invocation_id: str = "direct_call",
    ) -> ToolResult:
        """Execute a tool by name (without a backend-issued invocation)"""
        invocation = ToolInvocation(
            id=invocation_id,
            tool_name=tool_name,
            arguments=dict(arguments or {}),
        )
        return await self.execute_invocation(invocation, tracker)

    async def execute_invocation(
        self,
        invocation: ToolInvocation,
        tracker: Optional[ToolStatusTracker] = None,
        conversation_id: Optional[str] = None,
    ) -> ToolResult:
        """
        Execute one invocation.

        Marks the tool name ``executing`` in the tracker before the handler
        runs and ``completed``/``error`` afterwards, whatever the outcome.
        """
        tool_name = invocation.tool_name
        if tracker is not None:
            tracker.set_status(tool_name, ToolStatus.EXECUTING)

        start = time.monotonic()
        tool = self.catalog.get(tool_name)

        if tool is None:
            error = UnknownToolError(tool_name, self.catalog.names())
            logger.warning(f"[Tools] {error}")
            result = ToolResult.failure(invocation, str(error))
        else:
            try:
                raw = await tool.executor(invocation.arguments)
                result = ToolResult.from_raw(invocation, raw)
            except Exception as e:
                message = str(e) or e.__class__.__name__
                logger.error(f"[Tools] {ToolInvocationError(tool_name, message)}", exc_info=True)
                result = ToolResult.failure(invocation, message)

        if tracker is not None:
            tracker.set_status(
                tool_name,
                ToolStatus.COMPLETED if result.is_success else ToolStatus.ERROR,
            )

        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            f"[Tools] '{tool_name}' executed: "
            f"{'success' if result.is_success else 'error'} ({duration_ms}ms)"
        )
        if self.audit is not None:
            self.audit.log_tool_result(
                tool_name=tool_name,
                arg_keys=sorted(invocation.arguments),
                success=result.is_success,
                duration_ms=duration_ms,
                error_items=result.error_items,
                conversation_id=conversation_id,
            )
        return result
