# arriendo/services/plan_service.py
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import select, or_
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.errors import NotEntitled
from ..domain.statuses import SubscriptionStatus
from ..models import Plan, Subscription, utcnow


class Capability(str, Enum):
    KYC = "kyc"
    CONTRACT_REQUEST = "contract_request"
    START_CONTRACT = "start_contract"


_CAPABILITY_LABELS = {
    Capability.KYC: "realizar verificaciones KYC",
    Capability.CONTRACT_REQUEST: "solicitar contratos",
    Capability.START_CONTRACT: "iniciar contratos",
}


DEFAULT_PLANS = {
    "tenant_free": {"name": "Inquilino Gratis", "user_type": "tenant", "price_monthly": 0, "features": ["busqueda", "favoritos"]},
    "tenant_pro": {
        "name": "Inquilino PRO",
        "user_type": "tenant",
        "price_monthly": 19900,
        "features": ["solicitudes_de_contrato", "verificacion_kyc", "price_insights"],
        "includes_price_insights": True,
    },
    "landlord_free": {"name": "Propietario Gratis", "user_type": "landlord", "price_monthly": 0, "max_properties": 1},
    "landlord_pro": {
        "name": "Propietario PRO",
        "user_type": "landlord",
        "price_monthly": 49900,
        "max_properties": 10,
        "features": ["contratos", "verificacion_kyc", "price_insights"],
        "includes_price_insights": True,
    },
    "inmobiliaria_pro": {
        "name": "Inmobiliaria PRO",
        "user_type": "inmobiliaria",
        "price_monthly": 149900,
        "features": ["contratos", "verificacion_kyc", "price_insights", "multiusuario"],
        "includes_price_insights": True,
    },
}


@dataclass(frozen=True)
class ActivePlan:
    plan_id: str
    plan_name: str
    includes_price_insights: bool
    max_properties: Optional[int]
    expires_at: Optional[datetime]

    def as_dict(self) -> dict:
        return {
            "plan_id": self.plan_id,
            "plan_name": self.plan_name,
            "includes_price_insights": self.includes_price_insights,
            "max_properties": self.max_properties,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }


def ensure_default_plans(db: Session) -> None:
    existing = {p.id for p in db.scalars(select(Plan)).all()}
    for code, cfg in DEFAULT_PLANS.items():
        if code in existing:
            continue
        db.add(
            Plan(
                id=code,
                name=cfg["name"],
                user_type=cfg["user_type"],
                price_monthly=float(cfg.get("price_monthly", 0)),
                features_json=json.dumps(cfg.get("features", [])),
                max_properties=cfg.get("max_properties"),
                includes_price_insights=bool(cfg.get("includes_price_insights", False)),
                is_active=True,
            )
        )
    db.flush()


def list_plans(db: Session, *, user_type: Optional[str] = None) -> list[Plan]:
    q = select(Plan).where(Plan.is_active.is_(True)).order_by(Plan.price_monthly.asc())
    if user_type:
        q = q.where(Plan.user_type == user_type)
    return list(db.scalars(q).all())


def plan_features(plan: Plan) -> list[str]:
    try:
        v = json.loads(plan.features_json or "[]")
        return [str(x) for x in v] if isinstance(v, list) else []
    except ValueError:
        return []


def is_pro_plan(plan_id: Optional[str]) -> bool:
    if not plan_id:
        return False
    return plan_id.endswith(settings.pro_plan_suffix) or plan_id in set(settings.pro_plan_codes)


def get_user_active_plan(db: Session, *, user_id: str, now: Optional[datetime] = None) -> Optional[ActivePlan]:
    """
    Latest active, unexpired subscription for the user, or None.
    """
    now = now or utcnow()
    sub = db.scalar(
        select(Subscription)
        .where(
            Subscription.user_id == user_id,
            Subscription.status == SubscriptionStatus.ACTIVE.value,
            or_(Subscription.expires_at.is_(None), Subscription.expires_at > now),
        )
        .order_by(Subscription.started_at.desc())
        .limit(1)
    )
    if sub is None:
        return None

    plan = db.get(Plan, sub.plan_id)
    if plan is None:
        return None

    return ActivePlan(
        plan_id=str(plan.id),
        plan_name=str(plan.name),
        includes_price_insights=bool(plan.includes_price_insights),
        max_properties=plan.max_properties,
        expires_at=sub.expires_at,
    )


def is_entitled(db: Session, *, user_id: str, capability: Capability) -> bool:
    # every gated capability currently maps to the same PRO tier
    plan = get_user_active_plan(db, user_id=user_id)
    return plan is not None and is_pro_plan(plan.plan_id)


def require_entitled(db: Session, *, user_id: str, capability: Capability) -> None:
    """
    No plan and a non-PRO plan are the same user-facing failure: upgrade required.
    """
    if not is_entitled(db, user_id=user_id, capability=capability):
        raise NotEntitled(f"Debes tener un plan PRO activo para {_CAPABILITY_LABELS[capability]}")
