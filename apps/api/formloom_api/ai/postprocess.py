"""Post-processing of AI completions into form schemas.

Completions are untrusted: fences are stripped, JSON is parsed, and every
field is coerced to the minimum shape the form builder needs.
"""

import json
import re
from typing import Any

from formloom_api.ai.client import AIResponseParseError
from formloom_api.utils.slugs import generate_id

_JSON_FENCE = re.compile(r"```json\n?")
_FENCE = re.compile(r"```\n?")

UNTITLED_FORM = "Untitled Form"
UNTITLED_FIELD = "Untitled Field"


def strip_code_fences(content: str) -> str:
    """Remove Markdown code fences wrapping a completion.

    Only applies when the trimmed content starts with a fence; every fence
    marker in the content is then removed.
    """
    text = content.strip()
    if text.startswith("```json"):
        text = _FENCE.sub("", _JSON_FENCE.sub("", text))
    elif text.startswith("```"):
        text = _FENCE.sub("", text)
    return text


def parse_schema_content(content: str) -> dict[str, Any]:
    """Parse a completion into a JSON object.

    Raises:
        AIResponseParseError: invalid JSON or not an object
    """
    try:
        parsed = json.loads(strip_code_fences(content))
    except json.JSONDecodeError as e:
        raise AIResponseParseError("Failed to parse AI response as JSON") from e
    if not isinstance(parsed, dict):
        raise AIResponseParseError("Failed to parse AI response as JSON")
    return parsed


def _coerce_field(field: Any, keep_image: bool) -> dict[str, Any]:
    if not isinstance(field, dict):
        field = {}
    coerced: dict[str, Any] = {
        "id": field.get("id") or generate_id(),
        "type": field.get("type") or "text",
        "label": field.get("label") or UNTITLED_FIELD,
        "required": bool(field.get("required") or False),
    }
    # Optional keys are only emitted when present
    if field.get("placeholder") is not None:
        coerced["placeholder"] = field["placeholder"]
    if field.get("options") is not None:
        coerced["options"] = field["options"]
    if keep_image and field.get("image") is not None:
        coerced["image"] = field["image"]
    return coerced


def _coerce_fields(parsed: dict[str, Any], keep_image: bool) -> list[dict[str, Any]]:
    fields = parsed.get("fields") or []
    if not isinstance(fields, list):
        return []
    return [_coerce_field(field, keep_image) for field in fields]


def coerce_generated_schema(parsed: dict[str, Any]) -> dict[str, Any]:
    return {
        "title": parsed.get("title") or UNTITLED_FORM,
        "description": parsed.get("description") or "",
        "fields": _coerce_fields(parsed, keep_image=False),
    }


def coerce_modified_schema(parsed: dict[str, Any], current_schema: dict[str, Any]) -> dict[str, Any]:
    """Coerce a modification result, falling back to the current title/description."""
    if "description" in parsed and parsed["description"] is not None:
        description = parsed["description"]
    else:
        description = current_schema.get("description") or ""
    return {
        "title": parsed.get("title") or current_schema.get("title") or UNTITLED_FORM,
        "description": description,
        "fields": _coerce_fields(parsed, keep_image=True),
    }
