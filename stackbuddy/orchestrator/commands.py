"""
Direct slash commands answered without calling the completion backend.
"""

import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)

HELP_TEXT = """## What I can help with

**Form management**
- Create forms and add fields
- Remove fields, or make a developer copy of a form
- Stash, apply and remove field logic
- Add or remove unique slugs on field labels

**Form analysis**
- Form overviews: submission counts, settings, webhooks, notification and confirmation emails

## Available commands
- `/help` - Show this help message
- `/feedback <message>` - Send feedback about our interaction
- `/rate <rating> [comment]` - Rate your experience (-5 to +5)

## Tips
- Include form IDs when asking about specific forms
- Always confirm before asking for destructive operations"""

RATING_MIN = -5
RATING_MAX = 5

_FEEDBACK_RE = re.compile(r"^/feedback\s+(.+)$", re.IGNORECASE | re.DOTALL)
_RATE_RE = re.compile(r"^/rate\s+(-?\d+)(?:\s+(.+))?$", re.IGNORECASE | re.DOTALL)
_HELP_RE = re.compile(r"^/help$", re.IGNORECASE)

_FOLLOW_UP = "Is there anything else I can help you with?"


def handle_direct_command(text: str) -> Optional[str]:
    """
    Answer /feedback, /rate and /help directly.

    Returns:
        Reply text, or None if the message is not a direct command
    """
    message = (text or "").strip()

    match = _FEEDBACK_RE.match(message)
    if match:
        feedback = match.group(1).strip()
        logger.info(f"[Commands] Feedback received: {feedback}")
        return f'Thank you for your feedback! I\'ve recorded: "{feedback}"\n\n{_FOLLOW_UP}'

    match = _RATE_RE.match(message)
    if match:
        rating = int(match.group(1))
        comment = (match.group(2) or "").strip()
        if rating < RATING_MIN or rating > RATING_MAX:
            return f"Please provide a rating between {RATING_MIN} and +{RATING_MAX}. You provided: {rating}"

        logger.info(f"[Commands] Rating received: {rating} {comment!r}")
        reply = "Thank you for your rating! "
        if rating >= 4:
            reply += "I'm glad I could help!"
        elif rating >= 0:
            reply += "I appreciate your feedback."
        else:
            reply += "I'm sorry I couldn't help better. I'll work to improve."
        if comment:
            reply += f'\n\nComment: "{comment}"'
        return f"{reply}\n\n{_FOLLOW_UP}"

    if _HELP_RE.match(message):
        return HELP_TEXT

    return None
