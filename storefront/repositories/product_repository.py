"""
Product Repository - Data Access Layer for Products

Handles all catalog queries for products and returns Product domain models
with their variants, images, taxons, properties and rating summary.
"""
from collections import defaultdict
from typing import List, Optional, Tuple, Dict, Iterable

from storefront.domain.product import Product, TaxonSummary, ProductProperty
from storefront.core.database import get_db_connection_dict
from storefront.repositories.variant_repository import load_variants_for_products, PRODUCT_AVAILABLE

PRODUCT_COLUMNS = """
    p.id, p.name, p.slug, p.description, p.available_on, p.discontinue_on,
    p.deleted_at, p.meta_description, p.meta_keywords, p.created_at, p.updated_at
"""

SORT_COLUMNS = {
    'name': 'p.name',
    'created_at': 'p.created_at',
    'price': 'master_price',
}


class ProductRepository:
    """
    Repository for Product data access

    All SQL queries for products are centralized here.
    List queries load associations in batches (one query per association
    for the whole page) instead of per product.
    """

    @staticmethod
    def _load_taxons(cursor, product_ids: List[int]) -> Dict[int, List[TaxonSummary]]:
        grouped = defaultdict(list)
        cursor.execute("""
            SELECT pt.product_id, t.id, t.name, t.permalink, t.parent_id
            FROM products_taxons pt
            JOIN taxons t ON t.id = pt.taxon_id
            WHERE pt.product_id = ANY(%s)
            ORDER BY pt.position, t.id
        """, (product_ids,))
        for row in cursor.fetchall():
            row = dict(row)
            grouped[row.pop('product_id')].append(TaxonSummary(**row))
        return grouped

    @staticmethod
    def _load_properties(cursor, product_ids: List[int]) -> Dict[int, List[ProductProperty]]:
        grouped = defaultdict(list)
        cursor.execute("""
            SELECT pp.product_id, pr.name, pp.value
            FROM product_properties pp
            JOIN properties pr ON pr.id = pp.property_id
            WHERE pp.product_id = ANY(%s)
            ORDER BY pr.name
        """, (product_ids,))
        for row in cursor.fetchall():
            grouped[row['product_id']].append(ProductProperty(name=row['name'], value=row['value']))
        return grouped

    @staticmethod
    def _load_rating_stats(cursor, product_ids: List[int]) -> Dict[int, dict]:
        cursor.execute("""
            SELECT v.product_id, AVG(r.rating)::FLOAT as average_rating, COUNT(r.id) as ratings_count
            FROM ratings r
            JOIN line_items li ON li.id = r.line_item_id
            JOIN variants v ON v.id = li.variant_id
            WHERE v.product_id = ANY(%s)
            GROUP BY v.product_id
        """, (product_ids,))
        return {row['product_id']: row for row in cursor.fetchall()}

    def _build_products(self, cursor, rows: Iterable[dict]) -> List[Product]:
        """Map product rows to Product models, loading associations in batches"""
        rows = [dict(row) for row in rows]
        if not rows:
            return []

        ids = [row['id'] for row in rows]
        variants = load_variants_for_products(cursor, ids)
        taxons = self._load_taxons(cursor, ids)
        properties = self._load_properties(cursor, ids)
        ratings = self._load_rating_stats(cursor, ids)

        products = []
        for row in rows:
            row.pop('master_price', None)
            row.pop('total_count', None)
            product_variants = variants.get(row['id'], [])
            master = next((v for v in product_variants if v.is_master), None)
            stats = ratings.get(row['id'], {})

            products.append(Product(
                **row,
                master=master,
                variants=[v for v in product_variants if not v.is_master],
                images=[image for v in product_variants for image in v.images],
                taxons=taxons.get(row['id'], []),
                properties=properties.get(row['id'], []),
                average_rating=stats.get('average_rating'),
                ratings_count=stats.get('ratings_count', 0),
            ))
        return products

    def find_by_id_or_slug(self, identifier: str) -> Optional[Product]:
        """
        Find a live product by numeric id or by slug

        Args:
            identifier: "42" or "red-shirt"

        Returns:
            Product or None if not found
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            if str(identifier).isdigit():
                condition, param = "p.id = %s", int(identifier)
            else:
                condition, param = "p.slug = %s", identifier

            cursor.execute(f"""
                SELECT {PRODUCT_COLUMNS}
                FROM products p
                WHERE {condition} AND p.deleted_at IS NULL
            """, (param,))

            row = cursor.fetchone()
            if not row:
                return None

            return self._build_products(cursor, [row])[0]

        finally:
            cursor.close()
            conn.close()

    def find_by_ids(self, product_ids: List[int], available_only: bool = True) -> List[Product]:
        """Products for the given ids, in the same order as the ids"""
        if not product_ids:
            return []

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            availability = f"AND {PRODUCT_AVAILABLE}" if available_only else ""
            cursor.execute(f"""
                SELECT {PRODUCT_COLUMNS}
                FROM products p
                WHERE p.id = ANY(%s) {availability}
            """, (list(product_ids),))

            by_id = {product.id: product for product in self._build_products(cursor, cursor.fetchall())}
            return [by_id[pid] for pid in product_ids if pid in by_id]

        finally:
            cursor.close()
            conn.close()

    def find_available(
        self,
        taxon_id: Optional[int] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> Tuple[List[Product], int]:
        """
        Available products, optionally restricted to one taxon

        Returns:
            Tuple of (list of products, total count)
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = [PRODUCT_AVAILABLE]
            params = []

            if taxon_id is not None:
                conditions.append(
                    "EXISTS (SELECT 1 FROM products_taxons pt WHERE pt.product_id = p.id AND pt.taxon_id = %s)"
                )
                params.append(taxon_id)

            where_clause = " AND ".join(conditions)

            cursor.execute(f"""
                SELECT COUNT(*) as total
                FROM products p
                WHERE {where_clause}
            """, params)
            total = cursor.fetchone()['total']

            paging = ""
            if limit is not None:
                paging = "LIMIT %s OFFSET %s"
                params = params + [limit, offset]

            cursor.execute(f"""
                SELECT {PRODUCT_COLUMNS}
                FROM products p
                WHERE {where_clause}
                ORDER BY p.name, p.id
                {paging}
            """, params)

            return self._build_products(cursor, cursor.fetchall()), total

        finally:
            cursor.close()
            conn.close()

    def search(
        self,
        query: Optional[str] = None,
        category_id: Optional[int] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        sort_by: str = 'name',
        sort_order: str = 'asc',
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[Product], int]:
        """
        ILIKE search over available products

        Args:
            query: Matched against name and description
            category_id: Restrict to products in this taxon
            min_price / max_price: Any live variant priced within the range
            sort_by: name, price (master price) or created_at
            sort_order: asc or desc

        Returns:
            Tuple of (list of products, total count)
        """
        sort_column = SORT_COLUMNS.get(sort_by, SORT_COLUMNS['name'])
        direction = 'DESC' if sort_order == 'desc' else 'ASC'

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = [PRODUCT_AVAILABLE]
            params = []

            if query:
                conditions.append("(p.name ILIKE %s OR p.description ILIKE %s)")
                search_term = f"%{query}%"
                params.extend([search_term, search_term])

            if category_id is not None:
                conditions.append(
                    "EXISTS (SELECT 1 FROM products_taxons pt WHERE pt.product_id = p.id AND pt.taxon_id = %s)"
                )
                params.append(category_id)

            if min_price is not None or max_price is not None:
                price_conditions = ["v.product_id = p.id", "v.deleted_at IS NULL"]
                if min_price is not None:
                    price_conditions.append("v.price >= %s")
                    params.append(min_price)
                if max_price is not None:
                    price_conditions.append("v.price <= %s")
                    params.append(max_price)
                conditions.append(f"EXISTS (SELECT 1 FROM variants v WHERE {' AND '.join(price_conditions)})")

            where_clause = " AND ".join(conditions)

            cursor.execute(f"""
                SELECT COUNT(*) as total
                FROM products p
                WHERE {where_clause}
            """, params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT {PRODUCT_COLUMNS},
                    (SELECT mv.price FROM variants mv
                     WHERE mv.product_id = p.id AND mv.is_master LIMIT 1) as master_price
                FROM products p
                WHERE {where_clause}
                ORDER BY {sort_column} {direction} NULLS LAST, p.id
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            return self._build_products(cursor, cursor.fetchall()), total

        finally:
            cursor.close()
            conn.close()

    def find_related(self, product_id: int, limit: int = 4) -> List[Product]:
        """Other available products sharing at least one taxon"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT DISTINCT {PRODUCT_COLUMNS}
                FROM products p
                JOIN products_taxons pt ON pt.product_id = p.id
                WHERE pt.taxon_id IN (
                        SELECT taxon_id FROM products_taxons WHERE product_id = %s
                    )
                  AND p.id <> %s
                  AND {PRODUCT_AVAILABLE}
                ORDER BY p.name
                LIMIT %s
            """, (product_id, product_id, limit))

            return self._build_products(cursor, cursor.fetchall())

        finally:
            cursor.close()
            conn.close()

    def find_top_rated(self, limit: int = 10) -> List[Product]:
        """Available products ordered by average rating, best first"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {PRODUCT_COLUMNS}
                FROM products p
                JOIN (
                    SELECT v.product_id, AVG(r.rating) as avg_rating, COUNT(r.id) as ratings
                    FROM ratings r
                    JOIN line_items li ON li.id = r.line_item_id
                    JOIN variants v ON v.id = li.variant_id
                    GROUP BY v.product_id
                ) stats ON stats.product_id = p.id
                WHERE {PRODUCT_AVAILABLE}
                ORDER BY stats.avg_rating DESC, stats.ratings DESC, p.id
                LIMIT %s
            """, (limit,))

            return self._build_products(cursor, cursor.fetchall())

        finally:
            cursor.close()
            conn.close()

    def suggest_names(self, query: str, limit: int = 5) -> List[str]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT name FROM products
                WHERE name ILIKE %s AND deleted_at IS NULL
                ORDER BY name
                LIMIT %s
            """, (f"%{query}%", limit))

            return [row['name'] for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()
