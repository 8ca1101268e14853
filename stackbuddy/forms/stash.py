"""
Logic stash encoding.

A stash holds the logic objects of several fields in the default value of
one hidden text field::

    {"base64": base64(utf8(json({field_id: logic, ...})))}
"""

import base64
import binascii
import json
from typing import Any, Dict, Iterable, Mapping

from ..errors import StashError


def encode_logic_stash(logic_by_field_id: Mapping[str, Any]) -> str:
    """Encode a field id -> logic mapping into stash text"""
    try:
        payload = json.dumps(dict(logic_by_field_id), separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise StashError(f"Logic is not JSON serializable: {e}") from e
    encoded = base64.b64encode(payload.encode("utf-8")).decode("ascii")
    return json.dumps({"base64": encoded})


def decode_logic_stash(stash_text: str) -> Dict[str, Any]:
    """Decode stash text back into the field id -> logic mapping"""
    if not stash_text:
        raise StashError("Logic stash is empty")
    try:
        envelope = json.loads(stash_text)
    except json.JSONDecodeError as e:
        raise StashError(f"Logic stash is not valid JSON: {e}") from e
    if not isinstance(envelope, dict) or not isinstance(envelope.get("base64"), str):
        raise StashError("Logic stash has no base64 payload")
    try:
        raw = base64.b64decode(envelope["base64"], validate=True).decode("utf-8")
        logic = json.loads(raw)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise StashError(f"Logic stash payload is corrupt: {e}") from e
    if not isinstance(logic, dict):
        raise StashError("Logic stash payload is not an object")
    return logic


def stash_from_fields(fields: Iterable[Dict[str, Any]]) -> str:
    """Encode the logic of every field that has any"""
    return encode_logic_stash(
        {str(f["id"]): f["logic"] for f in fields if f.get("logic")}
    )
