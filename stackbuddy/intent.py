"""
Intent parsing results produced by the upstream intent collaborator.

The collaborator answers with either an IntentResult or an
IntentParsingError. Subject IDs it harvests are pattern matches over the
user's text and may be wrong, so they are only ever offered to the
completion backend as hints.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class IntentSubjects(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    form_id: List[str] = Field(default_factory=list, alias="formId")
    submission_id: List[str] = Field(default_factory=list, alias="submissionId")
    case: List[str] = Field(default_factory=list)
    jira: List[str] = Field(default_factory=list)
    account: List[str] = Field(default_factory=list)
    auth_provider: List[str] = Field(default_factory=list, alias="authProvider")

    def as_dict(self) -> Dict[str, List[str]]:
        """Non-empty subject lists keyed by their wire name"""
        data = self.model_dump(by_alias=True)
        return {
            key: [str(v) for v in value]
            for key, value in data.items()
            if isinstance(value, list) and value
        }


class IntentData(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    original_user_prompt: str = Field(alias="originalUserPrompt")
    sub_intents: List[str] = Field(default_factory=list, alias="subIntents")
    subjects: IntentSubjects = Field(default_factory=IntentSubjects)


class IntentResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    robot_name: str = Field(alias="robotName")
    intent: str
    intent_data: IntentData = Field(alias="intentData")


class IntentParsingError(BaseModel):
    error: str
    reason: str = ""


IntentParsingResponse = Union[IntentResult, IntentParsingError]


def parse_intent(raw: Union[str, Dict[str, Any]]) -> IntentParsingResponse:
    """
    Parse the collaborator's answer.

    Never raises: malformed input becomes an IntentParsingError.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"[Intent] Response is not JSON: {e}")
            return IntentParsingError(error="invalid_json", reason=str(e))

    if not isinstance(raw, dict):
        return IntentParsingError(error="invalid_response", reason=f"Expected an object, got {type(raw).__name__}")

    try:
        if "error" in raw:
            return IntentParsingError.model_validate(raw)
        return IntentResult.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"[Intent] Response failed validation: {e.error_count()} errors")
        return IntentParsingError(error="invalid_response", reason=str(e))


def render_intent_context(intent: Optional[IntentParsingResponse]) -> Optional[str]:
    """Prompt text describing the intent; subject IDs are marked as unverified"""
    if not isinstance(intent, IntentResult):
        return None

    lines = [f"Detected intent: {intent.intent}"]
    if intent.intent_data.sub_intents:
        lines.append(f"Sub-intents: {', '.join(intent.intent_data.sub_intents)}")

    subjects = intent.intent_data.subjects.as_dict()
    if subjects:
        lines.append("")
        lines.append(
            "Possible entity IDs found in the message (unverified hints, "
            "confirm with the user or the tools before relying on them):"
        )
        for key, values in subjects.items():
            lines.append(f"- {key}: {', '.join(values)}")
    return "\n".join(lines)
