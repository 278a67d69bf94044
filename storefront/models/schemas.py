from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from datetime import datetime
from decimal import Decimal


class CategoryBase(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None

class CategoryCreate(CategoryBase):
    pass

class Category(CategoryBase):
    id: int

    class Config:
        from_attributes = True

class ProductBase(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)

class ProductCreate(ProductBase):
    stock: int = Field(default=0, ge=0)
    category_ids: List[int] = []

class ProductUpdate(BaseModel):
    # No stock field: only order placement changes stock
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    category_ids: Optional[List[int]] = None

class Product(ProductBase):
    id: int
    stock: int
    categories: List[Category] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class CategoryAveragePrice(BaseModel):
    category: str
    average_price: Decimal

class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=25)
    email: str = Field(pattern=r".+@.+\..+")
    type: Literal["Customer", "Seller"] = "Customer"

class User(UserCreate):
    id: int
    created_at: datetime

    class Config:
        from_attributes = True

class CartItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)

class CartItem(BaseModel):
    id: int
    product_id: int
    quantity: int

    class Config:
        from_attributes = True

class OrderItem(BaseModel):
    product_id: int
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    class Config:
        from_attributes = True

class Order(BaseModel):
    id: int
    user_id: int
    total_amount: Decimal
    created_at: datetime
    items: List[OrderItem] = []

    class Config:
        from_attributes = True

class RatingCreate(BaseModel):
    rating: int = Field(ge=1, le=5)

class Review(BaseModel):
    id: int
    user_id: int
    product_id: int
    rating: int
    updated_at: datetime

    class Config:
        from_attributes = True

class ProductRating(BaseModel):
    product_id: int
    average_rating: Optional[Decimal] = None
    reviews: List[Review] = []

class LikeCreate(BaseModel):
    type: Literal["Product", "Category"]
    id: int

class Like(BaseModel):
    id: int
    user_id: int
    likeable_type: str
    likeable_id: int
    created_at: datetime

    class Config:
        from_attributes = True
