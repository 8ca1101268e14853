"""
StackBuddy Response Synthesizer - Final text from tool results

Used whenever the completion backend produced no usable narrative. Never
returns an empty string.
"""

import logging
from typing import List, Optional, Sequence

from ..constants import (
    GENERIC_COMPLETION_MESSAGE,
    NO_RESULTS_MESSAGE,
    TOOL_ERROR_FOOTER,
    TOOL_ERROR_HEADER,
)
from ..protocols import LLMClientProtocol
from ..tools.models import ToolResult
from ..tools.payloads import (
    ApiErrorPayload,
    EntityRef,
    FormOverviewPayload,
    ToolPayload,
    decode_payload,
)

logger = logging.getLogger(__name__)

GENERIC_REPLY_PROMPT = (
    "You are a forms support assistant. The user's request did not produce any "
    "tool results. Reply briefly: say what you can help with and ask for the "
    "detail you would need (for example a form ID)."
)


def _yes_no(value: Optional[bool]) -> str:
    return "Yes" if value else "No"


def render_errors(error_items: Sequence[str]) -> str:
    """Every error item as a bullet, with retry guidance"""
    lines = [TOOL_ERROR_HEADER, ""]
    lines.extend(f"- {item}" for item in error_items)
    lines.extend(["", TOOL_ERROR_FOOTER])
    return "\n".join(lines)


def _render_entities(title: str, entities: Sequence[EntityRef]) -> List[str]:
    lines = [f"### {title} ({len(entities)})"]
    if entities:
        lines.extend(f"- {entity.name} (ID: {entity.id})" for entity in entities)
    else:
        lines.append("- None")
    return lines


def render_overview(overview: FormOverviewPayload) -> str:
    """Markdown-like summary of a form overview"""
    lines = [
        f"## Form {overview.form_id} overview",
        "",
        f"- **Submissions:** {overview.submissions} ({overview.submissions_today} today)",
        f"- **Version:** {overview.version}",
        f"- **Fields:** {overview.field_count}",
    ]
    if overview.url:
        lines.append(f"- **URL:** {overview.url}")
    if overview.is_active is not None:
        lines.append(f"- **Active:** {_yes_no(overview.is_active)}")
    if overview.encrypted is not None:
        lines.append(f"- **Encrypted:** {_yes_no(overview.encrypted)}")
    if overview.timezone:
        lines.append(f"- **Timezone:** {overview.timezone}")
    if overview.is_one_question_at_a_time is not None:
        lines.append(f"- **One question at a time:** {_yes_no(overview.is_one_question_at_a_time)}")
    if overview.has_approvers is not None:
        lines.append(f"- **Has approvers:** {_yes_no(overview.has_approvers)}")
    if overview.is_workflow_form is not None:
        lines.append(f"- **Workflow form:** {_yes_no(overview.is_workflow_form)}")
    if overview.is_workflow_form and overview.is_workflow_published is not None:
        lines.append(f"- **Workflow published:** {_yes_no(overview.is_workflow_published)}")

    for title, entities in (
        ("Submit actions", overview.submit_actions),
        ("Notification emails", overview.notification_emails),
        ("Confirmation emails", overview.confirmation_emails),
    ):
        lines.append("")
        lines.extend(_render_entities(title, entities))
    return "\n".join(lines)


class ResponseSynthesizer:
    """
    Turns tool results into one user-facing answer.

    Error reporting takes priority: if any result failed, the answer lists
    every distinct error item and nothing else. Otherwise form overviews are
    rendered, and anything else gets a generic completion message.
    """

    def __init__(
        self,
        llm_client: Optional[LLMClientProtocol] = None,
        system_prompt: str = GENERIC_REPLY_PROMPT,
    ):
        self.llm_client = llm_client
        self.system_prompt = system_prompt

    @staticmethod
    def _payload(result: ToolResult) -> ToolPayload:
        if result.payload is not None:
            return result.payload
        if not result.is_success:
            return ApiErrorPayload(error_items=tuple(result.error_items or ()))
        return decode_payload(result.response)

    async def synthesize(
        self,
        results: Sequence[ToolResult],
        user_text: Optional[str] = None,
    ) -> str:
        if not results:
            return await self._generic_reply(user_text)

        errors: List[str] = []
        overviews: List[FormOverviewPayload] = []
        for result in results:
            payload = self._payload(result)
            if isinstance(payload, ApiErrorPayload):
                for item in payload.error_items:
                    if item not in errors:
                        errors.append(item)
            elif isinstance(payload, FormOverviewPayload):
                overviews.append(payload)

        if errors:
            logger.info(f"[Synth] Reporting {len(errors)} tool errors")
            return render_errors(errors)
        if overviews:
            return "\n\n".join(render_overview(overview) for overview in overviews)
        return GENERIC_COMPLETION_MESSAGE

    async def _generic_reply(self, user_text: Optional[str]) -> str:
        if self.llm_client is None:
            return NO_RESULTS_MESSAGE

        messages = [{"role": "system", "content": self.system_prompt}]
        if user_text:
            messages.append({"role": "user", "content": user_text})
        try:
            response = await self.llm_client.chat_completion(messages)
            text = (getattr(response, "content", None) or "").strip()
        except Exception as e:
            logger.warning(f"[Synth] Generic reply failed: {e}")
            text = ""
        return text or NO_RESULTS_MESSAGE
