import logging
from typing import List, Literal

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user
from storefront.core.database import get_db
from storefront.models.database import Category as DBCategory
from storefront.models.database import Like as DBLike
from storefront.models.database import Product as DBProduct
from storefront.models.database import User
from storefront.models.schemas import Like, LikeCreate

logger = logging.getLogger(__name__)

router = APIRouter()

LIKEABLE_MODELS = {
    "Product": DBProduct,
    "Category": DBCategory,
}

@router.post("/", response_model=Like, status_code=201)
def like_item(
    like_data: LikeCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Like a product or a category"""
    if db.get(LIKEABLE_MODELS[like_data.type], like_data.id) is None:
        raise HTTPException(status_code=404, detail=f"{like_data.type} not found")

    like = DBLike(user_id=user.id, likeable_type=like_data.type, likeable_id=like_data.id)
    db.add(like)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail=f"{like_data.type} already liked")
    db.refresh(like)
    logger.info(f"User {user.id} liked {like_data.type} {like_data.id}")
    return like

@router.get("/", response_model=List[Like])
def get_likes(
    type: Literal["Product", "Category"],
    id: int,
    db: Session = Depends(get_db),
):
    """Get the likes on one product or category"""
    return (
        db.query(DBLike)
        .filter(DBLike.likeable_type == type, DBLike.likeable_id == id)
        .order_by(DBLike.id)
        .all()
    )
