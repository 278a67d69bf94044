import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user
from storefront.core.database import get_db
from storefront.models.database import Category as DBCategory
from storefront.models.database import Product as DBProduct
from storefront.models.database import Review as DBReview
from storefront.models.database import User as DBUser
from storefront.models.schemas import (
    CategoryAveragePrice,
    Product,
    ProductCreate,
    ProductRating,
    ProductUpdate,
    RatingCreate,
    Review,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _load_categories(db: Session, category_ids: List[int]) -> List[DBCategory]:
    categories = db.query(DBCategory).filter(DBCategory.id.in_(category_ids)).all()
    if len(categories) != len(set(category_ids)):
        raise HTTPException(status_code=400, detail="Unknown category id")
    return categories

@router.post("/", response_model=Product, status_code=201)
async def create_product(product_data: ProductCreate, db: Session = Depends(get_db)):
    """Create a new product with its initial stock"""
    data = product_data.model_dump(exclude={"category_ids"})
    product = DBProduct(**data)
    product.categories = _load_categories(db, product_data.category_ids)
    db.add(product)
    db.commit()
    db.refresh(product)
    return product

@router.get("/", response_model=List[Product])
async def get_products(
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    category: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """Get products, optionally filtered by price range and category name"""
    query = db.query(DBProduct)
    if min_price is not None:
        query = query.filter(DBProduct.price >= min_price)
    if max_price is not None:
        query = query.filter(DBProduct.price <= max_price)
    if category:
        query = query.filter(DBProduct.categories.any(DBCategory.name == category))
    return query.order_by(DBProduct.id).all()

@router.get("/stats/average-price", response_model=List[CategoryAveragePrice])
async def get_average_price_per_category(db: Session = Depends(get_db)):
    """Average product price for each category that has products"""
    rows = (
        db.query(DBCategory.name, func.avg(DBProduct.price))
        .join(DBCategory.products)
        .group_by(DBCategory.name)
        .order_by(DBCategory.name)
        .all()
    )
    return [
        CategoryAveragePrice(
            category=name,
            average_price=Decimal(str(average)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
        )
        for name, average in rows
    ]

@router.get("/{product_id}", response_model=Product)
async def get_product(product_id: int, db: Session = Depends(get_db)):
    """Get a specific product"""
    product = db.get(DBProduct, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product

@router.put("/{product_id}", response_model=Product)
async def update_product(
    product_id: int,
    product_data: ProductUpdate,
    db: Session = Depends(get_db)
):
    """Update a product's details. Past orders keep the price they were placed at."""
    product = db.get(DBProduct, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    updates = product_data.model_dump(exclude_unset=True)
    category_ids = updates.pop("category_ids", None)
    for field, value in updates.items():
        setattr(product, field, value)
    if category_ids is not None:
        product.categories = _load_categories(db, category_ids)

    db.commit()
    db.refresh(product)
    return product

@router.post("/{product_id}/rate", response_model=Review)
def rate_product(
    product_id: int,
    rating_data: RatingCreate,
    user: DBUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Rate a product from 1 to 5. Rating it again replaces the caller's earlier rating."""
    if db.get(DBProduct, product_id) is None:
        raise HTTPException(status_code=404, detail="Product not found")

    review = _find_review(db, user.id, product_id)
    if review is None:
        review = DBReview(user_id=user.id, product_id=product_id, rating=rating_data.rating)
        db.add(review)
        try:
            db.commit()
        except IntegrityError:
            # Another request by the same user inserted first
            db.rollback()
            review = _find_review(db, user.id, product_id)
            review.rating = rating_data.rating
            db.commit()
    else:
        review.rating = rating_data.rating
        db.commit()

    db.refresh(review)
    logger.info(f"User {user.id} rated product {product_id}: {rating_data.rating}")
    return review

@router.get("/{product_id}/reviews", response_model=ProductRating)
def get_product_reviews(product_id: int, db: Session = Depends(get_db)):
    """Get a product's ratings and their average"""
    if db.get(DBProduct, product_id) is None:
        raise HTTPException(status_code=404, detail="Product not found")

    reviews = (
        db.query(DBReview)
        .filter(DBReview.product_id == product_id)
        .order_by(DBReview.id)
        .all()
    )
    average = None
    if reviews:
        average = (Decimal(sum(r.rating for r in reviews)) / len(reviews)).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
    return ProductRating(product_id=product_id, average_rating=average, reviews=reviews)


def _find_review(db: Session, user_id: int, product_id: int) -> Optional[DBReview]:
    return (
        db.query(DBReview)
        .filter(DBReview.user_id == user_id, DBReview.product_id == product_id)
        .first()
    )
