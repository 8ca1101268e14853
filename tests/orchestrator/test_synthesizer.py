"""Tests for stackbuddy.orchestrator.synthesizer - ResponseSynthesizer"""

import pytest

from stackbuddy.constants import (
    GENERIC_COMPLETION_MESSAGE,
    NO_RESULTS_MESSAGE,
    TOOL_ERROR_FOOTER,
    TOOL_ERROR_HEADER,
)
from stackbuddy.orchestrator.synthesizer import ResponseSynthesizer, render_errors, render_overview
from stackbuddy.tools import ToolBatchRunner, ToolCatalog, ToolExecutor
from stackbuddy.tools.models import ToolInvocation, ToolResult
from stackbuddy.tools.payloads import decode_payload

from conftest import FakeLLMClient


def _result(name, raw, call_id=None):
    return ToolResult.from_raw(ToolInvocation(id=call_id or f"call_{name}", tool_name=name), raw)


OVERVIEW = {
    "formId": "5150",
    "submissions": 12,
    "submissionsToday": 2,
    "version": 3,
    "fieldCount": 8,
    "isActive": True,
    "isWorkflowForm": True,
    "isWorkflowPublished": False,
    "submitActions": [{"id": "w1", "name": "CRM sync"}],
    "notificationEmails": [],
    "confirmationEmails": [{"id": "c1", "name": "Thanks for applying"}],
}


class TestErrorPriority:

    @pytest.mark.asyncio
    async def test_only_failed_call_reported(self):
        results = [
            _result("fsRestrictedApiFieldLiteAdd", {"isSuccess": True, "response": {"fieldId": "31"}}),
            _result("fsRestrictedApiFieldLogicStashApply",
                    {"isSuccess": False, "errorItems": ["Field update failed"]}),
        ]
        text = await ResponseSynthesizer().synthesize(results)

        bullets = [line for line in text.splitlines() if line.startswith("- ")]
        assert bullets == ["- Field update failed"]
        assert "31" not in text
        assert "completed" not in text.lower()

    @pytest.mark.asyncio
    async def test_raised_tool_error_reported_verbatim(self):
        catalog = ToolCatalog()

        async def add_field(args):
            return {"isSuccess": True, "response": {"fieldId": "31"}, "errorItems": []}

        async def apply_stash(args):
            raise RuntimeError("Field update failed")

        catalog.add("fsRestrictedApiFieldLiteAdd", "Add field", {"type": "object"}, add_field)
        catalog.add("fsRestrictedApiFieldLogicStashApply", "Apply stash", {"type": "object"}, apply_stash)
        results = await ToolBatchRunner(ToolExecutor(catalog)).run_all([
            ToolInvocation(id="call_1", tool_name="fsRestrictedApiFieldLiteAdd"),
            ToolInvocation(id="call_2", tool_name="fsRestrictedApiFieldLogicStashApply"),
        ])

        text = await ResponseSynthesizer().synthesize(results)

        bullets = [line for line in text.splitlines() if line.startswith("- ")]
        assert bullets == ["- Field update failed"]
        assert "31" not in text

    @pytest.mark.asyncio
    async def test_every_distinct_error_listed_once(self):
        results = [
            _result("a", {"isSuccess": False, "errorItems": ["Form not found", "Invalid field"]}),
            _result("b", {"isSuccess": False, "errorItems": ["Form not found"]}),
            _result("c", OVERVIEW),
        ]
        text = await ResponseSynthesizer().synthesize(results)
        assert text.count("Form not found") == 1
        assert "Invalid field" in text
        assert "## Form" not in text

    @pytest.mark.asyncio
    async def test_failure_results_without_payload(self):
        result = ToolResult(invocation_id="1", tool_name="x", is_success=False, error_items=["boom"])
        text = await ResponseSynthesizer().synthesize([result])
        assert "- boom" in text

    def test_render_errors_layout(self):
        assert render_errors(["a", "b"]) == "\n".join([TOOL_ERROR_HEADER, "", "- a", "- b", "", TOOL_ERROR_FOOTER])


class TestOverview:

    @pytest.mark.asyncio
    async def test_overview_rendered(self):
        text = await ResponseSynthesizer().synthesize([_result("overview", {"isSuccess": True, "response": OVERVIEW})])
        assert "## Form 5150 overview" in text
        assert "- CRM sync (ID: w1)" in text
        assert "- Thanks for applying (ID: c1)" in text
        assert "### Notification emails (0)" in text
        assert "- None" in text
        assert "**Workflow published:** No" in text

    def test_workflow_published_hidden_for_plain_forms(self):
        overview = decode_payload(dict(OVERVIEW, isWorkflowForm=False))
        assert "Workflow published" not in render_overview(overview)

    @pytest.mark.asyncio
    async def test_several_overviews_joined(self):
        other = dict(OVERVIEW, formId="6000")
        text = await ResponseSynthesizer().synthesize([_result("a", OVERVIEW), _result("b", other)])
        assert "## Form 5150 overview" in text
        assert "## Form 6000 overview" in text


class TestFallbacks:

    @pytest.mark.asyncio
    async def test_plain_success_gives_generic_message(self):
        text = await ResponseSynthesizer().synthesize([_result("fieldRemove", {"isSuccess": True, "response": {}})])
        assert text == GENERIC_COMPLETION_MESSAGE

    @pytest.mark.asyncio
    async def test_empty_results_without_backend(self):
        assert await ResponseSynthesizer().synthesize([]) == NO_RESULTS_MESSAGE

    @pytest.mark.asyncio
    async def test_empty_results_ask_backend(self):
        llm = FakeLLMClient(reply="I can help with form overviews. Which form?")
        text = await ResponseSynthesizer(llm).synthesize([], "hello")
        assert text == "I can help with form overviews. Which form?"
        assert llm.chat_calls[0]["messages"][-1] == {"role": "user", "content": "hello"}

    @pytest.mark.asyncio
    async def test_empty_backend_reply_falls_back(self):
        text = await ResponseSynthesizer(FakeLLMClient(reply="   ")).synthesize([])
        assert text == NO_RESULTS_MESSAGE

    @pytest.mark.asyncio
    async def test_backend_failure_falls_back(self):
        text = await ResponseSynthesizer(FakeLLMClient(reply=RuntimeError("down"))).synthesize([])
        assert text == NO_RESULTS_MESSAGE
