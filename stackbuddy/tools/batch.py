"""
StackBuddy Tool Batch Runner - Sequential execution of one turn's tool calls
"""

import logging
from typing import Callable, List, Optional, Sequence

from ..constants import SUPERSEDED_SKIP_MESSAGE
from .executor import ToolExecutor
from .models import ToolInvocation, ToolResult
from .status import ToolStatusTracker

logger = logging.getLogger(__name__)


class ToolBatchRunner:
    """
    Runs the invocations of one turn one at a time, in the given order.

    Invocations are never run concurrently so that dependent side effects
    on the same form (stash then apply, for instance) cannot interleave.
    One failing invocation does not stop the batch, and the runner always
    returns exactly one result per invocation, in input order.

    The runner keeps no results of its own, so one instance can serve every
    conversation. Callers collect results per request through ``on_result``
    (the agent appends them to ``MonitoringSession.tool_results``).
    """

    def __init__(self, executor: ToolExecutor):
        self.executor = executor

    async def run_all(
        self,
        invocations: Sequence[ToolInvocation],
        tracker: Optional[ToolStatusTracker] = None,
        should_continue: Optional[Callable[[], bool]] = None,
        conversation_id: Optional[str] = None,
        on_result: Optional[Callable[[ToolResult], None]] = None,
    ) -> List[ToolResult]:
        """
        Execute every invocation sequentially.

        Args:
            invocations: Tool calls requested by the completion backend
            tracker: Status tracker updated around each call
            should_continue: Checked before each call; once it returns False
                the remaining invocations are recorded as skipped failures
            conversation_id: Used for audit entries only
            on_result: Called with each result as soon as it is available

        Returns:
            One ToolResult per invocation, in the same order
        """
        results: List[ToolResult] = []
        stopped = False

        for index, invocation in enumerate(invocations):
            if not stopped and should_continue is not None and not should_continue():
                stopped = True
                logger.info(
                    f"[Tools] Batch stopped before call {index + 1}/{len(invocations)}; "
                    f"skipping the rest"
                )

            if stopped:
                result = ToolResult.failure(invocation, SUPERSEDED_SKIP_MESSAGE)
            else:
                result = await self.executor.execute_invocation(
                    invocation, tracker, conversation_id=conversation_id
                )

            results.append(result)
            if on_result is not None:
                on_result(result)

        failed = sum(1 for result in results if not result.is_success)
        logger.info(f"[Tools] Batch finished: {len(results)} calls, {failed} failed")
        return results
