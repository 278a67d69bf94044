from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session, sessionmaker

from storefront.core.database import get_db
from storefront.models.database import User
from storefront.services.cart_service import CartService
from storefront.services.order_service import OrderPlacementService
from storefront.services.sql_stores import SqlUnitOfWork


def get_current_user(
    x_user_id: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the caller from the X-User-ID header"""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Unauthorized: no user id provided")
    try:
        user_id = int(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Unauthorized: malformed user id")
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized: unknown user")
    return user


def get_uow_factory(db: Session = Depends(get_db)):
    """Units of work open their own sessions on the request's engine"""
    session_factory = sessionmaker(bind=db.get_bind(), autocommit=False, autoflush=False)
    return lambda: SqlUnitOfWork(session_factory)


def get_order_service(uow_factory=Depends(get_uow_factory)) -> OrderPlacementService:
    return OrderPlacementService(uow_factory)


def get_cart_service(uow_factory=Depends(get_uow_factory)) -> CartService:
    return CartService(uow_factory)
