"""
Products API Endpoints
Catalog browsing: product listing, detail, variants, related and top rated

Listing and detail payloads are cached per request parameters for
CACHE_TTL_SECONDS.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from storefront.core.auth import allow_anonymous
from storefront.core.cache import catalog_cache, build_cache_key
from storefront.core.errors import NotFoundError
from storefront.core.pagination import PageParams, page_params
from storefront.repositories.product_repository import ProductRepository
from storefront.repositories.rating_repository import RatingRepository
from storefront.repositories.variant_repository import VariantRepository

router = APIRouter()


@router.get("")
@allow_anonymous
async def list_products(
    taxon_id: Optional[int] = Query(None, description="Only products in this category"),
    paging: PageParams = Depends(page_params),
):
    """
    Available products, optionally filtered by category

    Returns products with variants, taxons and images plus pagination
    """
    cache_key = build_cache_key(
        "products_index", taxon_id=taxon_id, page=paging.page, per_page=paging.per_page
    )

    def load():
        products, total = ProductRepository().find_available(
            taxon_id=taxon_id, limit=paging.limit, offset=paging.offset
        )
        return {
            "products": [product.to_dict() for product in products],
            "pagination": paging.meta(total),
        }

    return catalog_cache.fetch(cache_key, load)


@router.get("/top_rated")
@allow_anonymous
async def top_rated_products(limit: int = Query(10, ge=1, le=50)):
    def load():
        return [product.to_dict() for product in ProductRepository().find_top_rated(limit=limit)]

    return catalog_cache.fetch(build_cache_key("products_top_rated", limit=limit), load)


@router.get("/{product_id}")
@allow_anonymous
async def get_product(product_id: str):
    """
    Product detail by id or slug

    Includes every variant (master first) with option values and images,
    the option types grouped with their values, properties, taxons and the
    latest ratings.
    """
    def load():
        product = ProductRepository().find_by_id_or_slug(product_id)
        if not product:
            return None
        data = product.to_detail_dict()
        data["ratings"] = [rating.model_dump() for rating in RatingRepository().find_for_product(product.id)]
        return data

    data = catalog_cache.fetch(build_cache_key("products_show", product_id=product_id), load)
    if data is None:
        raise NotFoundError("Product not found")
    return data


@router.get("/{product_id}/variants")
@allow_anonymous
async def get_product_variants(product_id: str):
    product = ProductRepository().find_by_id_or_slug(product_id)
    if not product:
        raise NotFoundError("Product not found")

    variants = VariantRepository().find_by_product(product.id, include_master=False)
    return [variant.to_dict() for variant in variants]


@router.get("/{product_id}/related")
@allow_anonymous
async def get_related_products(product_id: str):
    """Up to four other products sharing a category"""
    product = ProductRepository().find_by_id_or_slug(product_id)
    if not product:
        raise NotFoundError("Product not found")

    related = ProductRepository().find_related(product.id)
    return [item.to_dict() for item in related]
