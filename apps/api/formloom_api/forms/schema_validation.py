"""Form schema validation."""

import copy
import logging
from typing import Any

from fastapi import HTTPException, status
from pydantic import ValidationError

from formloom_api.schemas import FormSchema

logger = logging.getLogger(__name__)

DEFAULT_FORM_SCHEMA: dict[str, Any] = {
    "title": "Untitled Form",
    "description": "",
    "fields": [],
}


def default_form_schema() -> dict[str, Any]:
    return copy.deepcopy(DEFAULT_FORM_SCHEMA)


def validate_form_schema(schema: Any) -> dict[str, Any]:
    """Validate a form schema document and return its normalized JSON form.

    Raises:
        HTTPException: 400 "Invalid form schema format" on any shape mismatch
    """
    try:
        parsed = FormSchema.model_validate(schema)
    except ValidationError as e:
        logger.info(
            "Form schema rejected",
            extra={"event": "form.schema.invalid", "error_count": e.error_count()},
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid form schema format",
        )

    return parsed.model_dump(mode="json", by_alias=True, exclude_none=True)
