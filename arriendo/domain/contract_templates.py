# arriendo/domain/contract_templates.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping, Optional

# -----------------------------------------------------------------------------
# Contract templates
# -----------------------------------------------------------------------------
# Two kinds of tokens:
#   {{key}}   auto-filled from party / property data, always substituted
#   [TOKEN]   negotiated terms (dates, deposit, duration), left literally for
#             the owner to complete by hand before sending
# -----------------------------------------------------------------------------

DEFAULT_TEMPLATE_ID = "standard"

_PLACEHOLDER = re.compile(r"\{\{\s*([a-zA-Z0-9_]+)\s*\}\}")


@dataclass(frozen=True)
class ContractTemplate:
    id: str
    name: str
    description: str
    content: str


_STANDARD = """# CONTRATO DE ARRENDAMIENTO DE INMUEBLE

## DATOS DE LAS PARTES

### ARRENDADOR
**Nombre:** {{landlord_name}}
**Correo Electrónico:** {{landlord_email}}

### ARRENDATARIO
**Nombre:** {{tenant_name}}
**Correo Electrónico:** {{tenant_email}}

## DATOS DEL INMUEBLE
**Dirección:** {{property_address}}
**Precio Mensual:** ${{monthly_price}} COP

## TÉRMINOS DEL CONTRATO

### 1. OBJETO
El ARRENDADOR entrega en arrendamiento al ARRENDATARIO el inmueble descrito, para uso exclusivo de vivienda.

### 2. DURACIÓN
El contrato tendrá una duración de [DURACIÓN] meses, desde el [FECHA_INICIO] hasta el [FECHA_FIN].

### 3. CANON
El ARRENDATARIO pagará un canon mensual de ${{monthly_price}} COP dentro de los primeros cinco (5) días de cada mes.

### 4. DEPÓSITO
El ARRENDATARIO entregará un depósito equivalente a [DEPOSITO] meses de canon, reembolsable al terminar el contrato.

### 5. OBLIGACIONES
El ARRENDADOR entregará el inmueble en buen estado y atenderá las reparaciones necesarias.
El ARRENDATARIO pagará puntualmente, conservará el inmueble y no hará modificaciones sin autorización escrita.

### 6. TERMINACIÓN
Por vencimiento del plazo, mutuo acuerdo o incumplimiento de las obligaciones.

---

**FECHA:** [FECHA_ACTUAL]

**ARRENDADOR**                          **ARRENDATARIO**
{{landlord_name}}                      {{tenant_name}}
"""

_SIMPLIFIED = """# CONTRATO DE ARRENDAMIENTO

**ARRENDADOR:** {{landlord_name}} ({{landlord_email}})
**ARRENDATARIO:** {{tenant_name}} ({{tenant_email}})
**INMUEBLE:** {{property_address}}
**CANON MENSUAL:** ${{monthly_price}} COP

1. Duración de [DURACIÓN] meses, pagadero dentro de los primeros 5 días de cada mes.
2. Depósito de [DEPOSITO] meses de canon, reembolsable.
3. Terminación por vencimiento, mutuo acuerdo o incumplimiento.

**FECHA:** [FECHA_ACTUAL]
"""

_DETAILED = """# CONTRATO DE ARRENDAMIENTO DE INMUEBLE

## PARTES

**ARRENDADOR:** {{landlord_name}}, {{landlord_email}}, documento [DOCUMENTO_ARRENDADOR]
**ARRENDATARIO:** {{tenant_name}}, {{tenant_email}}, documento [DOCUMENTO_ARRENDATARIO]

## INMUEBLE

**Dirección:** {{property_address}}
**Tipo:** [TIPO_INMUEBLE]
**Área:** [AREA] m²
**Canon mensual:** ${{monthly_price}} COP

## CLÁUSULAS

PRIMERA. Objeto: arrendamiento para uso exclusivo de vivienda.
SEGUNDA. Duración: [DURACIÓN] meses, del [FECHA_INICIO] al [FECHA_FIN], prorrogable por periodos iguales salvo aviso con treinta (30) días de anticipación.
TERCERA. Canon: ${{monthly_price}} COP, pagadero por anticipado dentro de los primeros cinco (5) días hábiles de cada mes.
CUARTA. Depósito: [DEPOSITO] meses de canon, devuelto previa verificación del estado del inmueble.
QUINTA. Servicios públicos a cargo del ARRENDATARIO.
SEXTA. Mora: intereses a la tasa corriente del mercado sobre lo adeudado.
SÉPTIMA. Prohibido subarrendar o ceder sin autorización escrita del ARRENDADOR.
OCTAVA. Jurisdicción: tribunales de [CIUDAD], conforme a las leyes de la República de Colombia.

**FECHA DE FIRMA:** [FECHA_ACTUAL]
**LUGAR:** [CIUDAD], Colombia

{{landlord_name}}                      {{tenant_name}}
"""

TEMPLATES: dict[str, ContractTemplate] = {
    "standard": ContractTemplate("standard", "Estándar", "Cláusulas básicas completas", _STANDARD),
    "simplified": ContractTemplate("simplified", "Simplificado", "Contrato corto y directo", _SIMPLIFIED),
    "detailed": ContractTemplate("detailed", "Detallado", "Cláusulas adicionales y más detalle", _DETAILED),
}


def get_template(template_id: Optional[str]) -> ContractTemplate:
    """Unknown or missing ids resolve to the default template."""
    return TEMPLATES.get(template_id or "", TEMPLATES[DEFAULT_TEMPLATE_ID])


def list_templates() -> list[ContractTemplate]:
    return list(TEMPLATES.values())


def render(template_id: Optional[str], bindings: Mapping[str, str]) -> str:
    """
    Literal {{key}} substitution. Keys missing from bindings are left as-is so
    the owner can spot them; [BRACKETED] tokens are never touched.
    """
    tpl = get_template(template_id)

    def _sub(m: re.Match) -> str:
        key = m.group(1)
        if key in bindings:
            return str(bindings[key] if bindings[key] is not None else "")
        return m.group(0)

    return _PLACEHOLDER.sub(_sub, tpl.content)


def format_cop(amount: float) -> str:
    # es-CO grouping: 1.500.000
    return f"{int(round(float(amount))):,}".replace(",", ".")


def build_bindings(
    *,
    landlord_name: Optional[str],
    landlord_email: str,
    tenant_name: Optional[str],
    tenant_email: str,
    property_address: Optional[str],
    monthly_price: float,
) -> dict[str, str]:
    return {
        "landlord_name": landlord_name or landlord_email,
        "landlord_email": landlord_email,
        "tenant_name": tenant_name or tenant_email,
        "tenant_email": tenant_email,
        "property_address": property_address or "Dirección no especificada",
        "monthly_price": format_cop(monthly_price),
    }
