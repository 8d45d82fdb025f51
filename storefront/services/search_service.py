"""
Product Search Service
SQL filtering over the catalog and queries against an Elasticsearch index

The Elasticsearch index is maintained elsewhere; this module only reads it.
Hits are turned back into products through ProductRepository so both
backends return the same Product models.
"""
import logging
from typing import Dict, List, Optional, Tuple, Any

import httpx

from storefront.core.config import settings
from storefront.domain.product import Product
from storefront.repositories.product_repository import ProductRepository, SORT_COLUMNS
from storefront.repositories.category_repository import CategoryRepository

logger = logging.getLogger(__name__)

SORT_ORDERS = ('asc', 'desc')
SUGGESTION_LIMIT = 5


def normalize_sort(sort_by: Optional[str], sort_order: Optional[str]) -> Tuple[str, str]:
    """Unknown sort values fall back to name / asc"""
    sort_by = sort_by if sort_by in SORT_COLUMNS else 'name'
    sort_order = sort_order.lower() if sort_order and sort_order.lower() in SORT_ORDERS else 'asc'
    return sort_by, sort_order


class ElasticsearchProductSearch:
    """
    Reads product ids from an Elasticsearch-compatible index

    Args:
        base_url: e.g. http://localhost:9200
        index: index holding one document per product (id, name, description, taxon_ids)
        transport: optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        base_url: str = None,
        index: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        repository: Optional[ProductRepository] = None,
    ):
        self.base_url = (base_url or settings.ELASTICSEARCH_URL).rstrip("/")
        self.index = index or settings.ELASTICSEARCH_INDEX
        self.timeout = timeout or settings.ELASTICSEARCH_TIMEOUT
        self.transport = transport
        self.repository = repository or ProductRepository()

    @staticmethod
    def build_query(keywords: Optional[str] = None, taxon_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Query body for the _search endpoint

        Keywords match name (boosted) and description with fuzzy matching;
        without keywords every product matches.
        """
        if not keywords:
            query = {"match_all": {}}
            if taxon_id is not None:
                query = {"bool": {"must": [query], "filter": [{"term": {"taxon_ids": taxon_id}}]}}
            return {"query": query}

        return {
            "query": {
                "bool": {
                    "must": [
                        {
                            "multi_match": {
                                "query": keywords,
                                "fields": ["name^3", "description"],
                                "fuzziness": "AUTO",
                            }
                        }
                    ],
                    "filter": [{"term": {"taxon_ids": taxon_id}}] if taxon_id is not None else [],
                }
            }
        }

    async def search_ids(
        self,
        keywords: Optional[str] = None,
        taxon_id: Optional[int] = None,
        size: int = 20,
        offset: int = 0,
    ) -> Tuple[List[int], int]:
        """
        Returns:
            Tuple of (product ids in relevance order, total hits)

        Raises:
            httpx.HTTPError: index unreachable or returned an error status
            ValueError: body is not JSON or a hit id is not numeric
            KeyError: a hit without an _id
        """
        body = self.build_query(keywords, taxon_id)
        body["size"] = size
        body["from"] = offset
        body["_source"] = False

        async with httpx.AsyncClient(base_url=self.base_url, transport=self.transport) as client:
            response = await client.post(f"/{self.index}/_search", json=body, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()

        hits = data.get("hits", {})
        total = hits.get("total", 0)
        if isinstance(total, dict):
            total = total.get("value", 0)

        ids = [int(hit["_id"]) for hit in hits.get("hits", [])]
        return ids, total

    async def search(
        self,
        keywords: Optional[str] = None,
        taxon_id: Optional[int] = None,
        size: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Product], int]:
        ids, total = await self.search_ids(keywords, taxon_id, size, offset)
        return self.repository.find_by_ids(ids), total


class SearchService:
    """Entry point used by the search endpoints"""

    def __init__(
        self,
        backend: str = None,
        product_repository: Optional[ProductRepository] = None,
        category_repository: Optional[CategoryRepository] = None,
        elasticsearch: Optional[ElasticsearchProductSearch] = None,
    ):
        self.backend = (backend or settings.SEARCH_BACKEND).lower()
        self.product_repository = product_repository or ProductRepository()
        self.category_repository = category_repository or CategoryRepository()
        self._elasticsearch = elasticsearch

    @property
    def elasticsearch(self) -> ElasticsearchProductSearch:
        if self._elasticsearch is None:
            self._elasticsearch = ElasticsearchProductSearch(repository=self.product_repository)
        return self._elasticsearch

    def search_products(
        self,
        query: Optional[str] = None,
        category_id: Optional[int] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Product], int]:
        sort_by, sort_order = normalize_sort(sort_by, sort_order)
        return self.product_repository.search(
            query=query,
            category_id=category_id,
            min_price=min_price,
            max_price=max_price,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=offset,
        )

    async def full_text_search(
        self,
        keywords: Optional[str] = None,
        taxon_id: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Product], int, str]:
        """
        Search the index when the elasticsearch backend is configured

        Returns:
            Tuple of (products, total count, backend that answered)
        """
        if self.backend == 'elasticsearch':
            try:
                products, total = await self.elasticsearch.search(keywords, taxon_id, limit, offset)
                return products, total, 'elasticsearch'
            except httpx.HTTPError as e:
                logger.warning(f"Elasticsearch unavailable, falling back to SQL search: {e}")
            except (ValueError, KeyError) as e:
                # non-JSON body or a hit whose _id is not a product id
                logger.warning(f"Unexpected Elasticsearch response, falling back to SQL search: {e!r}")

        products, total = self.search_products(query=keywords, category_id=taxon_id, limit=limit, offset=offset)
        return products, total, 'sql'

    def suggestions(self, query: Optional[str]) -> List[str]:
        """Product and category names containing the query, without duplicates"""
        if not query or not query.strip():
            return []

        query = query.strip()
        names = self.product_repository.suggest_names(query, SUGGESTION_LIMIT)
        names += self.category_repository.suggest_names(query, SUGGESTION_LIMIT)
        return list(dict.fromkeys(names))
