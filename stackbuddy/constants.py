"""
Shared constants for StackBuddy.

Centralizes timing defaults, user-facing fallback text and forms API
markers so the orchestrator, tools and forms modules agree on them.
"""

# ── Completion monitor timing (seconds) ──

DEFAULT_POLL_INTERVAL = 15.0
DEFAULT_NO_TOOL_TIMEOUT = 30.0
DEFAULT_SESSION_TIMEOUT = 180.0

# ── Message content ──

CONTENT_TYPE_TEXT = "text/plain"
CHARS_PER_TOKEN = 4

# ── User-facing fallback text ──

NO_RESULTS_MESSAGE = (
    "I wasn't able to find anything to report for that request. "
    "Please try rephrasing it or include more detail, such as a form ID."
)
GENERIC_COMPLETION_MESSAGE = (
    "The requested operations have finished. There are no further details to report."
)
TOOL_ERROR_HEADER = "I ran into problems while working on your request:"
TOOL_ERROR_FOOTER = "Please verify your input (form IDs, field IDs and values) and try again."
TIMEOUT_MESSAGE = (
    "This is taking longer than expected, so I have stopped waiting for the remaining operations."
)
MONITOR_FAILURE_MESSAGE = (
    "I apologize, but something went wrong while finishing your request. Please try again."
)
STREAM_ERROR_PREFIX = "Error in streaming response: "
SUPERSEDED_SKIP_MESSAGE = "Skipped: the request was superseded by a newer message"
ACKNOWLEDGEMENT_MESSAGE = "Working on it. I will follow up with the details shortly."

# ── Forms API ──

FORMS_API_ROOT = "https://www.formstack.com/api/v2"
FORMS_API_KEY_ENV = "CORE_FORMS_API_V2_KEY"
FORM_ENABLED_LABEL = "MARV_ENABLED"
LOGIC_STASH_LABEL = "MARV_LOGIC_STASH"
