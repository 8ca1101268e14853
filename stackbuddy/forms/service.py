"""
Forms Service - Form, field and logic-stash operations on top of FormsApiClient

Each operation returns an ApiResponse. Failures inside an operation (missing
stash field, corrupt stash, form not enabled) become error responses through
``_with_error_handling``; nothing is raised to the tool layer.
"""

import asyncio
import logging
import re
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from ..constants import FORM_ENABLED_LABEL, LOGIC_STASH_LABEL
from ..errors import FormsApiError, StashError
from .client import ApiResponse, FormsApiClient
from .stash import decode_logic_stash, stash_from_fields

logger = logging.getLogger(__name__)

# (success, error message or None) for one step of a multi-field operation
StepOutcome = Tuple[bool, Optional[str]]


def unique_label_slug(field: Dict[str, Any]) -> str:
    """Slug derived from the last four digits of a field id, e.g. ``|4567|``"""
    return f"|{str(field.get('id') or '')[-4:]}|"


def label_without_slug(field: Dict[str, Any]) -> str:
    return re.sub(re.escape(unique_label_slug(field)), "", field.get("label") or "")


def _entity_refs(entries: Any, *name_keys: str, default: str) -> List[Dict[str, str]]:
    refs = []
    for entry in entries or []:
        name = next((entry.get(key) for key in name_keys if entry.get(key)), None)
        refs.append({"id": entry.get("id") or "", "name": name or default})
    return refs


def _batch_response(outcomes: Iterable[StepOutcome]) -> ApiResponse:
    errors = [error for ok, error in outcomes if not ok and error]
    return ApiResponse(
        is_success=not errors,
        response={"isSuccessful": not errors},
        error_items=errors or None,
    )


class FormsService:
    """
    Business operations used by the forms tools.

    Usage:
        service = FormsService(FormsApiClient(FormsApiConfig(api_key="...")))
        overview = await service.form_and_related_entity_overview("123456")
    """

    def __init__(self, client: FormsApiClient):
        self.client = client

    # ===== Form operations =====

    async def form_lite_add(self, form_name: str, fields: List[Dict[str, Any]]) -> ApiResponse:
        async def operation() -> ApiResponse:
            sanitized = [
                {
                    "label": f.get("label"),
                    "field_type": f.get("field_type"),
                    "hidden": "1" if f.get("isHidden") else "0",
                    "require": "1" if f.get("isRequired") else "0",
                }
                for f in fields or []
            ]
            result = await self.client.post_form(form_name, sanitized)
            if not result.is_success or not result.response:
                return ApiResponse(is_success=False, error_items=result.error_items)
            form = result.response
            return ApiResponse.ok({
                "editUrl": form.get("edit_url"),
                "viewUrl": form.get("url"),
                "formId": form.get("id"),
                "isSuccess": True,
            })

        return await self._with_error_handling("form_lite_add", operation)

    async def form_developer_copy(self, form_id: str) -> ApiResponse:
        return await self.client.post_form_copy(form_id)

    # ===== Field operations =====

    async def field_lite_add(self, form_id: str, field: Dict[str, Any]) -> ApiResponse:
        async def operation() -> ApiResponse:
            result = await self.client.post_field(form_id, {
                "field_type": field.get("field_type"),
                "label": field.get("label"),
                "hidden": "1" if field.get("isHidden") else "0",
                "require": "1" if field.get("isRequired") else "0",
            })
            if not result.is_success or not result.response:
                return ApiResponse(is_success=False, error_items=result.error_items)
            return ApiResponse.ok({
                "fieldId": result.response.get("id"),
                "fieldJson": result.response,
            })

        return await self._with_error_handling("field_lite_add", operation)

    async def field_remove(self, field_id: str) -> ApiResponse:
        return await self.client.delete_field(field_id)

    # ===== Logic stash operations =====

    async def field_logic_stash_create(self, form_id: str) -> ApiResponse:
        async def operation() -> ApiResponse:
            await self._require_enabled(form_id)
            fields = await self._get_fields(form_id)
            with_logic = [f for f in fields if f.get("logic")]
            if not with_logic:
                return ApiResponse.error("No fields with logic found on this form")

            stash_text = stash_from_fields(with_logic)
            logger.info(f"[Forms] Stashing logic of {len(with_logic)} fields on form {form_id}")
            return await self.client.post_field(form_id, {
                "field_type": "text",
                "hidden": True,
                "default_value": stash_text,
                "default": stash_text,
                "label": LOGIC_STASH_LABEL,
            })

        return await self._with_error_handling("field_logic_stash_create", operation)

    async def field_logic_stash_apply(self, form_id: str) -> ApiResponse:
        async def operation() -> ApiResponse:
            stash_field = await self._get_stash_field(form_id)
            logic_by_field = decode_logic_stash(
                stash_field.get("default") or stash_field.get("default_value") or ""
            )
            logger.info(
                f"[Forms] Applying stashed logic to {len(logic_by_field)} fields on form {form_id}"
            )

            outcomes: List[StepOutcome] = []
            for field_id, logic in logic_by_field.items():
                result = await self.client.put_field_logic(field_id, logic)
                outcomes.append((
                    result.is_success,
                    None if result.is_success else
                    f"Failed to apply logic to field {field_id}: {', '.join(result.error_items or [])}",
                ))
            return _batch_response(outcomes)

        return await self._with_error_handling("field_logic_stash_apply", operation)

    async def field_logic_stash_apply_and_remove(self, form_id: str) -> ApiResponse:
        async def operation() -> ApiResponse:
            applied = await self.field_logic_stash_apply(form_id)
            if not applied.is_success:
                return applied
            removed = await self.field_logic_stash_remove(form_id)
            return ApiResponse(
                is_success=removed.is_success,
                response={"isSuccessful": removed.is_success},
                error_items=removed.error_items,
            )

        return await self._with_error_handling("field_logic_stash_apply_and_remove", operation)

    async def field_logic_stash_remove(self, form_id: str) -> ApiResponse:
        async def operation() -> ApiResponse:
            stash_field = await self._get_stash_field(form_id)
            return await self.client.delete_field(str(stash_field["id"]))

        return await self._with_error_handling("field_logic_stash_remove", operation)

    async def field_logic_remove(self, form_id: str) -> ApiResponse:
        async def operation() -> ApiResponse:
            await self._require_enabled(form_id)
            with_logic = [f for f in await self._get_fields(form_id) if f.get("logic")]
            if not with_logic:
                return ApiResponse.ok({"isSuccessful": True})

            outcomes: List[StepOutcome] = []
            for field in with_logic:
                result = await self.client.put_field_logic(str(field["id"]), None)
                outcomes.append((
                    result.is_success,
                    None if result.is_success else
                    f"Failed to remove logic from field {field['id']}: {', '.join(result.error_items or [])}",
                ))
            return _batch_response(outcomes)

        return await self._with_error_handling("field_logic_remove", operation)

    # ===== Label slug operations =====

    async def field_label_unique_slug_add(self, form_id: str) -> ApiResponse:
        async def operation() -> ApiResponse:
            await self._require_enabled(form_id)
            outcomes: List[StepOutcome] = []
            for field in await self._get_fields(form_id):
                new_label = unique_label_slug(field) + (field.get("label") or "")
                result = await self.client.put_field(str(field["id"]), {"label": new_label})
                outcomes.append((
                    result.is_success,
                    None if result.is_success else
                    f"Failed to add slug to field {field['id']}: {', '.join(result.error_items or [])}",
                ))
            return _batch_response(outcomes)

        return await self._with_error_handling("field_label_unique_slug_add", operation)

    async def field_label_unique_slug_remove(self, form_id: str) -> ApiResponse:
        async def operation() -> ApiResponse:
            await self._require_enabled(form_id)
            outcomes: List[StepOutcome] = []
            for field in await self._get_fields(form_id):
                cleaned = label_without_slug(field)
                if cleaned == field.get("label"):
                    continue
                result = await self.client.put_field(str(field["id"]), {"label": cleaned})
                outcomes.append((
                    result.is_success,
                    None if result.is_success else
                    f"Failed to remove slug from field {field['id']}: {', '.join(result.error_items or [])}",
                ))
            return _batch_response(outcomes)

        return await self._with_error_handling("field_label_unique_slug_remove", operation)

    # ===== Overview =====

    async def form_and_related_entity_overview(self, form_id: str) -> ApiResponse:
        async def operation() -> ApiResponse:
            form_result, webhooks, notifications, confirmations = await asyncio.gather(
                self.client.get_form(form_id),
                self.client.get_form_webhooks(form_id),
                self.client.get_form_notifications(form_id),
                self.client.get_form_confirmations(form_id),
            )
            if not form_result.is_success or not form_result.response:
                return ApiResponse(
                    is_success=False,
                    error_items=form_result.error_items or ["Failed to get form details"],
                )

            form = form_result.response
            overview: Dict[str, Any] = {
                "formId": form.get("id"),
                "submissions": form.get("submissions") or 0,
                "version": form.get("version") or 1,
                "submissionsToday": form.get("submissions_today") or 0,
                "lastSubmissionId": form.get("last_submission_id"),
                "url": form.get("url"),
                "encrypted": bool(form.get("encrypted")),
                "isActive": not form.get("inactive"),
                "timezone": form.get("timezone") or "UTC",
                "isOneQuestionAtATime": bool(form.get("should_display_one_question_at_a_time")),
                "hasApprovers": bool(form.get("has_approvers")),
                "isWorkflowForm": bool(form.get("is_workflow_form")),
                "fieldCount": len(form.get("fields") or []),
                "submitActions": _entity_refs(
                    (webhooks.response or {}).get("webhooks") if webhooks.is_success else None,
                    "name", "url", default="Unnamed Webhook",
                ),
                "notificationEmails": _entity_refs(
                    (notifications.response or {}).get("notifications") if notifications.is_success else None,
                    "name", "subject", default="Unnamed Notification",
                ),
                "confirmationEmails": _entity_refs(
                    (confirmations.response or {}).get("confirmations") if confirmations.is_success else None,
                    "name", "subject", default="Unnamed Confirmation",
                ),
            }
            if overview["isWorkflowForm"]:
                overview["isWorkflowPublished"] = bool(form.get("is_workflow_published"))

            logger.info(
                f"[Forms] Overview for form {form_id}: {overview['fieldCount']} fields, "
                f"{len(overview['submitActions'])} webhooks, "
                f"{len(overview['notificationEmails'])} notifications, "
                f"{len(overview['confirmationEmails'])} confirmations"
            )
            return ApiResponse.ok(overview)

        return await self._with_error_handling("form_and_related_entity_overview", operation)

    # ===== Helpers =====

    async def _with_error_handling(
        self,
        name: str,
        operation: Callable[[], Awaitable[ApiResponse]],
    ) -> ApiResponse:
        try:
            return await operation()
        except (FormsApiError, StashError) as e:
            logger.warning(f"[Forms] {name} failed: {e}")
            return ApiResponse.error(str(e))
        except Exception as e:
            logger.error(f"[Forms] {name} failed: {e}", exc_info=True)
            return ApiResponse.error(str(e) or "Unknown error")

    async def _require_enabled(self, form_id: str) -> None:
        if not await self.client.is_form_enabled(form_id):
            raise FormsApiError(
                f"Form {form_id} is not enabled for assistant changes "
                f"(no {FORM_ENABLED_LABEL} field)"
            )

    async def _get_fields(self, form_id: str) -> List[Dict[str, Any]]:
        result = await self.client.get_form(form_id)
        if not result.is_success or not result.response:
            raise FormsApiError(", ".join(result.error_items or []) or "Failed to get form fields")
        return result.response.get("fields") or []

    async def _get_stash_field(self, form_id: str) -> Dict[str, Any]:
        """Newest stash field on the form (largest numeric id)"""
        stash_fields = [
            f for f in await self._get_fields(form_id) if f.get("label") == LOGIC_STASH_LABEL
        ]
        if not stash_fields:
            raise FormsApiError("No logic stash field found")
        return max(stash_fields, key=lambda f: int(f["id"]))
