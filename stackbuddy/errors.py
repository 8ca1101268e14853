"""
StackBuddy Errors - Exception taxonomy

Nothing raised here escapes a public entry point: executors, coordinators
and monitors convert these into result objects or visible text.
"""


class StackBuddyError(Exception):
    """Base class for all StackBuddy errors"""


class ConfigError(StackBuddyError):
    """Invalid or incomplete configuration"""


class UnknownToolError(StackBuddyError):
    """Requested tool name is not registered in the catalog"""

    def __init__(self, tool_name: str, available=None):
        self.tool_name = tool_name
        self.available = list(available or [])
        message = f"Unknown tool: {tool_name}"
        if self.available:
            message += f". Available tools: {', '.join(self.available)}"
        super().__init__(message)


class ToolInvocationError(StackBuddyError):
    """A registered tool failed while executing"""

    def __init__(self, tool_name: str, message: str):
        self.tool_name = tool_name
        super().__init__(f"Error executing {tool_name}: {message}")


class StreamError(StackBuddyError):
    """The completion backend call itself failed"""


class MonitorInternalError(StackBuddyError):
    """Unexpected failure inside a completion monitor poll tick"""


class FormsApiError(StackBuddyError):
    """A forms API request could not be completed"""


class StashError(StackBuddyError):
    """A logic stash blob could not be encoded or decoded"""
