"""
Forms tool definitions - registers FormsService operations as tools.

Tool names are the ones the completion backend is prompted with; arguments
are validated only by their JSON Schema.
"""

from typing import Any, Dict

from ..tools.catalog import ToolCatalog
from .service import FormsService

FIELD_TYPES = [
    "text", "number", "datetime", "email", "phone",
    "address", "signature", "file", "section",
]

ENABLED_FORMS_ONLY = "This CAN ONLY BE DONE ON FORMS ENABLED FOR THE ASSISTANT."


class FormsToolNames:
    FIELD_REMOVE = "fieldRemove"
    FORM_LITE_ADD = "fsRestrictedApiFormLiteAdd"
    FIELD_LITE_ADD = "fsRestrictedApiFieldLiteAdd"
    FIELD_LOGIC_STASH_CREATE = "fsRestrictedApiFieldLogicStashCreate"
    FIELD_LOGIC_STASH_APPLY = "fsRestrictedApiFieldLogicStashApply"
    FIELD_LOGIC_STASH_APPLY_AND_REMOVE = "fsRestrictedApiFieldLogicStashApplyAndRemove"
    FIELD_LOGIC_STASH_REMOVE = "fsRestrictedApiFieldLogicStashRemove"
    FIELD_LOGIC_REMOVE = "fsRestrictedApiFieldLogicRemove"
    FIELD_LABEL_UNIQUE_SLUG_ADD = "fsRestrictedApiFieldLabelUniqueSlugAdd"
    FIELD_LABEL_UNIQUE_SLUG_REMOVE = "fsRestrictedApiFieldLabelUniqueSlugRemove"
    FORM_DEVELOPER_COPY = "fsRestrictedApiFormDeveloperCopy"
    FORM_AND_RELATED_ENTITY_OVERVIEW = "fsRestrictedApiFormAndRelatedEntityOverview"


def _form_id_schema(description: str) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "formId": {"type": "string", "description": description},
        },
        "required": ["formId"],
    }


_FIELD_PROPERTIES: Dict[str, Any] = {
    "label": {
        "type": "string",
        "description": "The label/title for the field",
    },
    "field_type": {
        "type": "string",
        "description": "Field type: " + ", ".join(FIELD_TYPES),
        "enum": FIELD_TYPES,
    },
    "isHidden": {
        "type": "boolean",
        "description": "Whether the field should be hidden from users",
    },
    "isRequired": {
        "type": "boolean",
        "description": "Whether the field is required",
    },
}


def build_forms_catalog(service: FormsService) -> ToolCatalog:
    """Catalog with every forms tool bound to the given service"""
    catalog = ToolCatalog()

    async def field_remove(args: Dict[str, Any]):
        return await service.field_remove(str(args["fieldId"]))

    async def form_lite_add(args: Dict[str, Any]):
        return await service.form_lite_add(args["formName"], args.get("fields") or [])

    async def field_lite_add(args: Dict[str, Any]):
        return await service.field_lite_add(str(args["formId"]), args)

    def form_op(method):
        async def handler(args: Dict[str, Any]):
            return await method(str(args["formId"]))
        return handler

    catalog.add(
        FormsToolNames.FIELD_REMOVE,
        "Remove a field from a form by its field ID. This permanently deletes "
        "the field and all its data.",
        {
            "type": "object",
            "properties": {
                "fieldId": {"type": "string", "description": "The ID of the field to remove"},
            },
            "required": ["fieldId"],
        },
        field_remove,
        risk_level="destructive",
    )
    catalog.add(
        FormsToolNames.FORM_LITE_ADD,
        "Create a form from a name and a list of simple field definitions. "
        "When successful, provides the edit URL, view URL and form ID.",
        {
            "type": "object",
            "properties": {
                "formName": {"type": "string", "description": "The name for the new form"},
                "fields": {
                    "type": "array",
                    "description": "Fields to create, each with a label and field_type",
                    "items": {
                        "type": "object",
                        "properties": _FIELD_PROPERTIES,
                        "required": ["label", "field_type"],
                    },
                },
            },
            "required": ["formName", "fields"],
        },
        form_lite_add,
        risk_level="write",
    )
    catalog.add(
        FormsToolNames.FIELD_LITE_ADD,
        "Add a field to a form using simplified syntax (label, field_type and "
        "optional isRequired / isHidden). " + ENABLED_FORMS_ONLY,
        {
            "type": "object",
            "properties": {
                "formId": {"type": "string", "description": "The ID of the form to add the field to"},
                **_FIELD_PROPERTIES,
            },
            "required": ["formId", "label", "field_type"],
        },
        field_lite_add,
        risk_level="write",
    )
    catalog.add(
        FormsToolNames.FIELD_LABEL_UNIQUE_SLUG_ADD,
        "Add unique slugs to all field labels in a form to make them easier to "
        "identify. " + ENABLED_FORMS_ONLY,
        _form_id_schema("The ID of the form to add unique slugs to"),
        form_op(service.field_label_unique_slug_add),
        risk_level="write",
    )
    catalog.add(
        FormsToolNames.FIELD_LABEL_UNIQUE_SLUG_REMOVE,
        "Remove unique slugs from all field labels in a form. " + ENABLED_FORMS_ONLY,
        _form_id_schema("The ID of the form to remove unique slugs from"),
        form_op(service.field_label_unique_slug_remove),
        risk_level="write",
    )
    catalog.add(
        FormsToolNames.FIELD_LOGIC_REMOVE,
        "Remove all logic from the fields of a form. " + ENABLED_FORMS_ONLY,
        _form_id_schema("The ID of the form to remove logic from"),
        form_op(service.field_logic_remove),
        risk_level="destructive",
    )
    catalog.add(
        FormsToolNames.FIELD_LOGIC_STASH_CREATE,
        "Stash (save) all field logic of a form for later restoration. " + ENABLED_FORMS_ONLY,
        _form_id_schema("The ID of the form to stash logic from"),
        form_op(service.field_logic_stash_create),
        risk_level="write",
    )
    catalog.add(
        FormsToolNames.FIELD_LOGIC_STASH_APPLY,
        "Apply previously stashed field logic back to a form.",
        _form_id_schema("The ID of the form to apply stashed logic to"),
        form_op(service.field_logic_stash_apply),
        risk_level="write",
    )
    catalog.add(
        FormsToolNames.FIELD_LOGIC_STASH_APPLY_AND_REMOVE,
        "Apply previously stashed field logic back to a form, then remove the stash.",
        _form_id_schema("The ID of the form to apply and remove stashed logic"),
        form_op(service.field_logic_stash_apply_and_remove),
        risk_level="write",
    )
    catalog.add(
        FormsToolNames.FIELD_LOGIC_STASH_REMOVE,
        "Remove the stashed field logic from a form without applying it.",
        _form_id_schema("The ID of the form to remove stashed logic from"),
        form_op(service.field_logic_stash_remove),
        risk_level="destructive",
    )
    catalog.add(
        FormsToolNames.FORM_DEVELOPER_COPY,
        "Create a developer copy of a form for testing changes safely.",
        _form_id_schema("The ID of the form to copy"),
        form_op(service.form_developer_copy),
        risk_level="write",
    )
    catalog.add(
        FormsToolNames.FORM_AND_RELATED_ENTITY_OVERVIEW,
        "Get an overview of a form: submission counts, status, settings and "
        "related webhooks, notification emails and confirmation emails.",
        _form_id_schema("The ID of the form to get an overview for"),
        form_op(service.form_and_related_entity_overview),
    )
    return catalog
