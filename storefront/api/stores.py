"""
Stores API Endpoints
"""
from fastapi import APIRouter

from storefront.core.auth import allow_anonymous
from storefront.core.errors import NotFoundError
from storefront.repositories.reference_repository import ReferenceRepository

router = APIRouter()


@router.get("/{store_id}")
@allow_anonymous
async def get_store(store_id: int):
    """Store settings including the hero image shown on the home page"""
    store = ReferenceRepository().find_store(store_id)
    if not store:
        raise NotFoundError("Store not found")
    return store.model_dump()
