"""Built-in form template endpoints (public)."""

from fastapi import APIRouter, HTTPException, status

from formloom_api.forms.templates import get_all_template_names, get_template
from formloom_api.schemas import TemplateOut

router = APIRouter(prefix="/v1/templates", tags=["templates"])


@router.get("", response_model=list[TemplateOut])
async def list_templates() -> list[TemplateOut]:
    return [
        TemplateOut(name=name, schema_json=get_template(name))
        for name in get_all_template_names()
    ]


@router.get("/{name}", response_model=TemplateOut)
async def get_template_by_name(name: str) -> TemplateOut:
    schema = get_template(name)
    if schema is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
    return TemplateOut(name=name, schema_json=schema)
