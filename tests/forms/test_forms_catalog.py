"""Tests for stackbuddy.forms.definitions - forms tool catalog"""

from unittest.mock import AsyncMock

import pytest

from stackbuddy.forms import FormsService, FormsToolNames, build_forms_catalog
from stackbuddy.forms.client import ApiResponse
from stackbuddy.tools import ToolExecutor


@pytest.fixture
def service():
    return AsyncMock(spec=FormsService)


class TestCatalog:

    def test_registers_every_tool(self, service):
        catalog = build_forms_catalog(service)
        expected = {
            value for key, value in vars(FormsToolNames).items() if key.isupper()
        }
        assert set(catalog.names()) == expected
        assert len(catalog) == 12

    def test_schemas_are_openai_functions(self, service):
        for schema in build_forms_catalog(service).schemas():
            assert schema["type"] == "function"
            assert schema["function"]["parameters"]["type"] == "object"

    def test_field_remove_is_destructive(self, service):
        tool = build_forms_catalog(service).get(FormsToolNames.FIELD_REMOVE)
        assert tool.risk_level == "destructive"


class TestHandlers:

    @pytest.mark.asyncio
    async def test_form_id_tools_pass_form_id(self, service):
        service.field_logic_remove.return_value = ApiResponse.ok({"isSuccessful": True})
        executor = ToolExecutor(build_forms_catalog(service))

        result = await executor.execute(FormsToolNames.FIELD_LOGIC_REMOVE, {"formId": 555})

        assert result.is_success is True
        service.field_logic_remove.assert_awaited_once_with("555")

    @pytest.mark.asyncio
    async def test_missing_argument_becomes_error_result(self, service):
        executor = ToolExecutor(build_forms_catalog(service))
        result = await executor.execute(FormsToolNames.FIELD_REMOVE, {})
        assert result.is_success is False
        assert result.error_items == ["'fieldId'"]

    @pytest.mark.asyncio
    async def test_overview_result_decodes_as_overview(self, service):
        service.form_and_related_entity_overview.return_value = ApiResponse.ok({
            "formId": "555",
            "fieldCount": 3,
            "submitActions": [],
            "notificationEmails": [],
            "confirmationEmails": [],
        })
        executor = ToolExecutor(build_forms_catalog(service))
        result = await executor.execute(
            FormsToolNames.FORM_AND_RELATED_ENTITY_OVERVIEW, {"formId": "555"}
        )
        assert result.payload.form_id == "555"
        assert result.payload.field_count == 3
