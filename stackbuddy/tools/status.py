"""
StackBuddy Tool Status - Per-request tool execution status

Tracks which tool names are executing, completed or errored for the life of
one request. Each name holds exactly one status, so the three views are
disjoint by construction.
"""

import logging
from typing import Dict, List, Optional, Tuple, Union

from .models import ToolStatus

logger = logging.getLogger(__name__)


class ToolStatusTracker:
    """
    Status of tool names for one conversation's current request.

    Usage:
        tracker = ToolStatusTracker()
        tracker.set_status("fieldRemove", ToolStatus.EXECUTING)
        tracker.is_settled()    # False
        tracker.describe()      # "Working on: fieldRemove"
    """

    def __init__(self):
        # Insertion ordered; a name is re-inserted when it is re-classified
        self._statuses: Dict[str, ToolStatus] = {}

    def set_status(self, tool_name: str, status: Union[ToolStatus, str]) -> None:
        """Move a tool name into the given status set (removing it from the others)"""
        status = ToolStatus(status)
        self._statuses.pop(tool_name, None)
        self._statuses[tool_name] = status
        logger.debug(f"[Tools] {tool_name} -> {status.value}")

    def _names(self, status: ToolStatus) -> List[str]:
        return [name for name, current in self._statuses.items() if current == status]

    @property
    def executing(self) -> frozenset:
        return frozenset(self._names(ToolStatus.EXECUTING))

    @property
    def completed(self) -> frozenset:
        return frozenset(self._names(ToolStatus.COMPLETED))

    @property
    def errors(self) -> frozenset:
        return frozenset(self._names(ToolStatus.ERROR))

    def status_of(self, tool_name: str) -> Optional[ToolStatus]:
        return self._statuses.get(tool_name)

    def is_settled(self) -> bool:
        """True iff no tool name is executing"""
        return not self._names(ToolStatus.EXECUTING)

    def is_empty(self) -> bool:
        return not self._statuses

    def describe(self) -> Optional[str]:
        """
        Summarize the highest-priority non-empty set.

        Priority is executing > completed > errors. Returns None when no tool
        has been tracked since the last reset.
        """
        executing = self._names(ToolStatus.EXECUTING)
        if executing:
            return f"Working on: {', '.join(executing)}"
        completed = self._names(ToolStatus.COMPLETED)
        if completed:
            return f"Completed: {', '.join(completed)}"
        errors = self._names(ToolStatus.ERROR)
        if errors:
            return f"Encountered errors in: {', '.join(errors)}"
        return None

    def snapshot(self) -> Tuple[Tuple[str, str], ...]:
        """Hashable view of every name and its status"""
        return tuple(sorted((name, status.value) for name, status in self._statuses.items()))

    def reset(self) -> None:
        """Clear all three sets (new request for the same conversation)"""
        self._statuses.clear()

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "executing": self._names(ToolStatus.EXECUTING),
            "completed": self._names(ToolStatus.COMPLETED),
            "errors": self._names(ToolStatus.ERROR),
        }
