# arriendo/routers/templates.py
from __future__ import annotations

from fastapi import APIRouter

from ..domain.contract_templates import get_template, list_templates, render
from ..schemas import TemplateOut, TemplatePreviewIn, TemplatePreviewOut

router = APIRouter(prefix="/contract-templates", tags=["contract-templates"])


@router.get("", response_model=list[TemplateOut])
def templates():
    return [TemplateOut(id=t.id, name=t.name, description=t.description, content=t.content) for t in list_templates()]


@router.post("/preview", response_model=TemplatePreviewOut)
def preview(payload: TemplatePreviewIn):
    tpl = get_template(payload.template_id)
    return TemplatePreviewOut(template_id=tpl.id, content=render(tpl.id, payload.bindings))
