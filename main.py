import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from storefront.api.routes import cart, categories, likes, orders, products, users
from storefront.core.database import init_db
from storefront.core.logging import configure_logging

configure_logging()
logger = logging.getLogger("storefront.requests")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(
    title="Storefront API",
    description="Products, carts and transactional order placement",
    version="1.0.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(products.router, prefix="/api/v1/products", tags=["products"])
app.include_router(categories.router, prefix="/api/v1/categories", tags=["categories"])
app.include_router(users.router, prefix="/api/v1/users", tags=["users"])
app.include_router(cart.router, prefix="/api/v1/cart", tags=["cart"])
app.include_router(orders.router, prefix="/api/v1/orders", tags=["orders"])
app.include_router(likes.router, prefix="/api/v1/likes", tags=["likes"])


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    # User routes carry personal details; keep them out of the request log
    if not request.url.path.startswith("/api/v1/users"):
        logger.info(f"{request.method} {request.url.path} -> {response.status_code}")
    return response


@app.get("/")
async def root():
    return {"message": "Storefront API"}

@app.get("/health")
async def health_check():
    return {"status": "healthy"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
