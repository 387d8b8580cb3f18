# arriendo/routers/meta.py
from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(prefix="/meta", tags=["meta"])

DISCLAIMER_STATEMENT = (
    "Este contrato es una plantilla generada automáticamente y no constituye asesoría legal. "
    "Te recomendamos revisarlo con un abogado antes de firmarlo."
)
DISCLAIMER_CHECKBOX = "Entiendo que este documento no es asesoría legal y acepto continuar."


@router.get("/disclaimer", response_model=dict)
def disclaimer():
    # shown before both the owner send step and the tenant approval step
    return {
        "statement": DISCLAIMER_STATEMENT,
        "checkbox_label": DISCLAIMER_CHECKBOX,
        "required_for": ["approve_and_send_contract", "tenant_approve_contract"],
    }
