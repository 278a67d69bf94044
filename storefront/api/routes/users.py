import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user
from storefront.core.database import get_db
from storefront.models.database import User as DBUser
from storefront.models.schemas import User, UserCreate

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/", response_model=User, status_code=201)
async def register_user(user_data: UserCreate, db: Session = Depends(get_db)):
    """Register a new customer or seller"""
    existing = db.query(DBUser).filter(DBUser.email == user_data.email).first()
    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")

    user = DBUser(**user_data.model_dump())
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Registered user {user.id}")
    return user

@router.get("/me", response_model=User)
async def get_me(user: DBUser = Depends(get_current_user)):
    """Get the calling user"""
    return user
