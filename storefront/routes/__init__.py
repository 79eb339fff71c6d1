"""API routes."""

from fastapi import APIRouter

from storefront.routes import admin, catalog, redirect

api_router = APIRouter()

# Storefront pages (coupons, products, brands)
api_router.include_router(catalog.router, prefix="/v1", tags=["catalog"])

# Redirect endpoint (Shop Now)
api_router.include_router(redirect.router, prefix="/r", tags=["redirect"])

# Admin dashboard (partnerships, links, merchants, insights)
api_router.include_router(admin.router, prefix="/v1/admin", tags=["admin"])
