# arriendo/routers/plans.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..schemas import ActivePlanOut, PlanOut
from ..services.plan_service import get_user_active_plan, is_pro_plan, list_plans, plan_features

router = APIRouter(prefix="/plans", tags=["plans"])


@router.get("", response_model=list[PlanOut])
def plans(user_type: Optional[str] = Query(default=None), db: Session = Depends(get_db)):
    return [
        PlanOut(
            id=p.id,
            name=p.name,
            description=p.description,
            user_type=p.user_type,
            price_monthly=p.price_monthly,
            price_currency=p.price_currency,
            features=plan_features(p),
            max_properties=p.max_properties,
            includes_price_insights=p.includes_price_insights,
        )
        for p in list_plans(db, user_type=user_type)
    ]


@router.get("/active", response_model=Optional[ActivePlanOut])
def active_plan(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    plan = get_user_active_plan(db, user_id=p.user_id)
    if plan is None:
        return None
    return ActivePlanOut(
        plan_id=plan.plan_id,
        plan_name=plan.plan_name,
        includes_price_insights=plan.includes_price_insights,
        max_properties=plan.max_properties,
        expires_at=plan.expires_at,
        is_pro=is_pro_plan(plan.plan_id),
    )
