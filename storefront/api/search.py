"""
Search API Endpoints
- /products: SQL filtering with price range, category and sorting
- /suggestions: autocomplete names
- /elasticsearch: full text search against the product index
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from storefront.core.auth import allow_anonymous
from storefront.core.pagination import PageParams, search_page_params
from storefront.services.search_service import SearchService, normalize_sort

router = APIRouter()


@router.get("/products")
@allow_anonymous
async def search_products(
    q: Optional[str] = Query(None, description="Matched against name and description"),
    category_id: Optional[int] = Query(None),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    sort_by: Optional[str] = Query('name', description="name, price or created_at"),
    sort_order: Optional[str] = Query('asc', description="asc or desc"),
    paging: PageParams = Depends(search_page_params),
):
    sort_by, sort_order = normalize_sort(sort_by, sort_order)
    products, total = SearchService().search_products(
        query=q,
        category_id=category_id,
        min_price=min_price,
        max_price=max_price,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=paging.limit,
        offset=paging.offset,
    )

    return {
        "products": [product.to_dict() for product in products],
        "pagination": paging.meta(total),
        "filters": {
            "query": q,
            "category_id": category_id,
            "min_price": min_price,
            "max_price": max_price,
            "sort_by": sort_by,
            "sort_order": sort_order,
        },
    }


@router.get("/suggestions")
@allow_anonymous
async def search_suggestions(q: Optional[str] = Query(None)):
    return {"suggestions": SearchService().suggestions(q)}


@router.get("/elasticsearch")
@allow_anonymous
async def elasticsearch_products(
    q: Optional[str] = Query(None, description="Keywords; all products when empty"),
    taxon_id: Optional[int] = Query(None),
    paging: PageParams = Depends(search_page_params),
):
    """Full text search; answered from SQL when the index is not configured"""
    products, total, backend = await SearchService().full_text_search(
        keywords=q, taxon_id=taxon_id, limit=paging.limit, offset=paging.offset
    )
    return {
        "products": [product.to_dict() for product in products],
        "pagination": paging.meta(total),
        "backend": backend,
    }
