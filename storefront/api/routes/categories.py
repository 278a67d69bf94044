from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List

from storefront.core.database import get_db
from storefront.models.database import Category as DBCategory
from storefront.models.schemas import Category, CategoryCreate

router = APIRouter()

@router.post("/", response_model=Category, status_code=201)
async def create_category(category_data: CategoryCreate, db: Session = Depends(get_db)):
    """Create a new category"""
    existing = db.query(DBCategory).filter(DBCategory.name == category_data.name).first()
    if existing:
        raise HTTPException(status_code=400, detail="Category already exists")

    category = DBCategory(**category_data.model_dump())
    db.add(category)
    db.commit()
    db.refresh(category)
    return category

@router.get("/", response_model=List[Category])
async def get_categories(db: Session = Depends(get_db)):
    """Get all categories"""
    return db.query(DBCategory).order_by(DBCategory.name).all()
