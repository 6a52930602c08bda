from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from taskhub.db.session import get_db
from taskhub.models import User
from taskhub.schemas.envelope import Envelope
from taskhub.schemas.users import UserOut
from taskhub.security.context import Principal
from taskhub.security.dependencies import require_principal

router = APIRouter(tags=["users"])


@router.get("/me", response_model=Envelope[UserOut])
def me(principal: Principal = Depends(require_principal), db: Session = Depends(get_db)) -> Envelope[UserOut]:
    user = db.get(User, principal.id)
    return Envelope(data=UserOut.model_validate(user))


@router.get("/users", response_model=Envelope[list[UserOut]])
def list_users(db: Session = Depends(get_db)) -> Envelope[list[UserOut]]:
    # Global admin only (see config/security_config.yaml).
    users = db.scalars(select(User).order_by(User.id)).all()
    return Envelope(data=[UserOut.model_validate(u) for u in users])
