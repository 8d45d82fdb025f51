"""
Variants API Endpoints
"""
from fastapi import APIRouter

from storefront.core.auth import allow_anonymous
from storefront.core.errors import NotFoundError
from storefront.repositories.variant_repository import VariantRepository

router = APIRouter()


@router.get("")
@allow_anonymous
async def list_variants():
    """Non-master variants of available products"""
    return [variant.to_dict() for variant in VariantRepository().find_available()]


@router.get("/by_product/{product_id}")
@allow_anonymous
async def list_variants_by_product(product_id: int):
    variants = VariantRepository().find_by_product(product_id)
    return [variant.to_dict() for variant in variants]


@router.get("/{variant_id}")
@allow_anonymous
async def get_variant(variant_id: int):
    variant = VariantRepository().find_by_id(variant_id)
    if not variant:
        raise NotFoundError("Variant not found")
    return variant.to_dict()
