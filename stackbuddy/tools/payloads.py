"""
StackBuddy Tool Payloads - Known tool-result shapes

Tool handlers return loosely shaped data (API universal responses, overview
objects, plain strings, JSON text). ``decode_payload`` classifies that data
exactly once, when the executor builds a ToolResult, so consumers dispatch on
the variant type instead of probing dictionaries.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union


@dataclass(frozen=True)
class EntityRef:
    """A named entity attached to a form (webhook, notification, confirmation)"""
    id: str
    name: str


@dataclass(frozen=True)
class FormOverviewPayload:
    """Overview of a form and its related entities"""
    form_id: str
    submissions: int = 0
    submissions_today: int = 0
    version: int = 1
    field_count: int = 0
    url: Optional[str] = None
    is_active: Optional[bool] = None
    encrypted: Optional[bool] = None
    timezone: Optional[str] = None
    is_one_question_at_a_time: Optional[bool] = None
    has_approvers: Optional[bool] = None
    is_workflow_form: Optional[bool] = None
    is_workflow_published: Optional[bool] = None
    submit_actions: Tuple[EntityRef, ...] = ()
    notification_emails: Tuple[EntityRef, ...] = ()
    confirmation_emails: Tuple[EntityRef, ...] = ()


@dataclass(frozen=True)
class ApiErrorPayload:
    """A failed call; every error item is kept in order"""
    error_items: Tuple[str, ...]


@dataclass(frozen=True)
class ApiSuccessPayload:
    """A successful call whose response has no richer known shape"""
    response: Any = None


@dataclass(frozen=True)
class TextPayload:
    """Anything else: plain text, non-JSON strings, other JSON values"""
    text: str = ""


ToolPayload = Union[FormOverviewPayload, ApiErrorPayload, ApiSuccessPayload, TextPayload]

# Keys that mark an object as a form overview (besides formId)
_OVERVIEW_MARKERS = ("fieldCount", "submitActions", "notificationEmails", "confirmationEmails")

_FAILURE_WITHOUT_DETAIL = "The operation failed without returning error details"


def _is_overview(obj: Any) -> bool:
    return (
        isinstance(obj, dict)
        and "formId" in obj
        and any(marker in obj for marker in _OVERVIEW_MARKERS)
    )


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _entity_refs(entries: Any) -> Tuple[EntityRef, ...]:
    refs: List[EntityRef] = []
    for entry in entries or []:
        if isinstance(entry, dict):
            refs.append(EntityRef(id=str(entry.get("id", "")), name=str(entry.get("name", ""))))
    return tuple(refs)


def _overview_from_dict(obj: Dict[str, Any]) -> FormOverviewPayload:
    return FormOverviewPayload(
        form_id=str(obj.get("formId", "")),
        submissions=_as_int(obj.get("submissions"), 0),
        submissions_today=_as_int(obj.get("submissionsToday"), 0),
        version=_as_int(obj.get("version"), 1),
        field_count=_as_int(obj.get("fieldCount"), 0),
        url=obj.get("url"),
        is_active=obj.get("isActive"),
        encrypted=obj.get("encrypted"),
        timezone=obj.get("timezone"),
        is_one_question_at_a_time=obj.get("isOneQuestionAtATime"),
        has_approvers=obj.get("hasApprovers"),
        is_workflow_form=obj.get("isWorkflowForm"),
        is_workflow_published=obj.get("isWorkflowPublished"),
        submit_actions=_entity_refs(obj.get("submitActions")),
        notification_emails=_entity_refs(obj.get("notificationEmails")),
        confirmation_emails=_entity_refs(obj.get("confirmationEmails")),
    )


def _decode_dict(obj: Dict[str, Any]) -> ToolPayload:
    error_items = obj.get("errorItems")
    if error_items:
        if not isinstance(error_items, list):
            error_items = [error_items]
        return ApiErrorPayload(error_items=tuple(str(item) for item in error_items))

    if obj.get("isSuccess") is False:
        return ApiErrorPayload(error_items=(_FAILURE_WITHOUT_DETAIL,))

    if _is_overview(obj):
        return _overview_from_dict(obj)

    if obj.get("isSuccess") is True:
        response = obj.get("response")
        if _is_overview(response):
            return _overview_from_dict(response)
        return ApiSuccessPayload(response=response)

    return TextPayload(text=json.dumps(obj, ensure_ascii=False))


def decode_payload(raw: Any) -> ToolPayload:
    """
    Classify a raw tool return value.

    Strings that parse as JSON are parsed first. Objects exposing a non-empty
    ``errorItems`` (or ``isSuccess: false``) are errors, overview-shaped
    objects become FormOverviewPayload, other ``isSuccess: true`` objects are
    successes, and everything else is text.
    """
    if isinstance(raw, (ApiErrorPayload, ApiSuccessPayload, FormOverviewPayload, TextPayload)):
        return raw
    if raw is None:
        return TextPayload()
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            return TextPayload(text=raw)
        if isinstance(parsed, dict):
            return _decode_dict(parsed)
        return TextPayload(text=raw)
    if isinstance(raw, dict):
        return _decode_dict(raw)
    try:
        return TextPayload(text=json.dumps(raw, ensure_ascii=False))
    except (TypeError, ValueError):
        return TextPayload(text=str(raw))
