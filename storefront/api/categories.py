"""
Categories API Endpoints
The taxon tree and the products filed under a taxon
"""
from fastapi import APIRouter, Depends, Query

from storefront.core.auth import allow_anonymous
from storefront.core.cache import catalog_cache, build_cache_key
from storefront.core.errors import NotFoundError
from storefront.core.pagination import PageParams, make_page_params
from storefront.core.config import settings
from storefront.repositories.category_repository import CategoryRepository
from storefront.repositories.product_repository import ProductRepository

router = APIRouter()

PERMALINK_PREFIX = "categories/"


def category_page_params(
    page: int = Query(1, ge=1),
    per_page: int = Query(None, ge=1),
) -> PageParams:
    return make_page_params(page, per_page, default_per_page=settings.SEARCH_PER_PAGE)


@router.get("")
@allow_anonymous
async def list_categories():
    """Root categories with their direct children"""
    return [taxon.to_dict() for taxon in CategoryRepository().find_roots()]


@router.get("/{category_id}")
@allow_anonymous
async def get_category(category_id: int):
    taxon = CategoryRepository().find_by_id(category_id)
    if not taxon:
        raise NotFoundError("Category not found")
    return taxon.to_dict()


@router.get("/{category_id}/products")
@allow_anonymous
async def get_category_products(category_id: int, paging: PageParams = Depends(category_page_params)):
    """
    Available products of one category

    Returns:
        {category, products, pagination}
    """
    taxon = CategoryRepository().find_by_id(category_id)
    if not taxon:
        raise NotFoundError("Category not found")

    cache_key = build_cache_key(
        "products_category", taxon_id=category_id, page=paging.page, per_page=paging.per_page
    )

    def load():
        products, total = ProductRepository().find_available(
            taxon_id=category_id, limit=paging.limit, offset=paging.offset
        )
        return {
            "products": [product.to_dict() for product in products],
            "pagination": paging.meta(total),
        }

    page = catalog_cache.fetch(cache_key, load)
    return {"category": taxon.model_dump(exclude={'children', 'parent'}), **page}


@router.get("/{slug}/taxons")
@allow_anonymous
async def get_taxon_by_slug(slug: str):
    """Category by the last segment of its permalink (categories/<slug>)"""
    taxon = CategoryRepository().find_by_permalink(f"{PERMALINK_PREFIX}{slug}")
    if not taxon:
        raise NotFoundError("Category not found")
    return taxon.to_dict()
