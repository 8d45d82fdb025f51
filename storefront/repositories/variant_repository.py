"""
Variant Repository - Data Access Layer for Variants

Also hosts the batch loaders (variants, option values, images) the product
repository reuses so a page of products costs a fixed number of queries.
"""
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from storefront.domain.product import Variant, OptionValue, Image
from storefront.core.database import get_db_connection_dict

VARIANT_COLUMNS = """
    v.id, v.product_id, v.sku, v.is_master, v.price, v.currency, v.weight,
    v.track_inventory, v.count_on_hand, v.position, v.deleted_at,
    p.name as product_name
"""

PRODUCT_AVAILABLE = (
    "p.deleted_at IS NULL AND p.available_on <= NOW() "
    "AND (p.discontinue_on IS NULL OR p.discontinue_on > NOW())"
)


def load_option_values(cursor, variant_ids: Iterable[int]) -> Dict[int, List[OptionValue]]:
    """Option values grouped by variant id"""
    variant_ids = list(variant_ids)
    grouped = defaultdict(list)
    if not variant_ids:
        return grouped

    cursor.execute("""
        SELECT
            ovv.variant_id,
            ov.id, ov.option_type_id, ov.name, ov.presentation, ov.position,
            ot.name as option_type_name,
            ot.presentation as option_type_presentation
        FROM option_values_variants ovv
        JOIN option_values ov ON ov.id = ovv.option_value_id
        JOIN option_types ot ON ot.id = ov.option_type_id
        WHERE ovv.variant_id = ANY(%s)
        ORDER BY ot.position, ov.position
    """, (variant_ids,))

    for row in cursor.fetchall():
        row = dict(row)
        variant_id = row.pop('variant_id')
        grouped[variant_id].append(OptionValue(**row))
    return grouped


def load_images(cursor, variant_ids: Iterable[int]) -> Dict[int, List[Image]]:
    """Images grouped by variant id"""
    variant_ids = list(variant_ids)
    grouped = defaultdict(list)
    if not variant_ids:
        return grouped

    cursor.execute("""
        SELECT id, variant_id, alt, position, url, thumb_url
        FROM images
        WHERE variant_id = ANY(%s)
        ORDER BY position, id
    """, (variant_ids,))

    for row in cursor.fetchall():
        grouped[row['variant_id']].append(Image(**row))
    return grouped


def build_variants(cursor, rows: List[dict]) -> List[Variant]:
    """Turn variant rows into Variant models with option values and images"""
    ids = [row['id'] for row in rows]
    option_values = load_option_values(cursor, ids)
    images = load_images(cursor, ids)

    return [
        Variant(**row, option_values=option_values.get(row['id'], []), images=images.get(row['id'], []))
        for row in rows
    ]


def load_variants_for_products(cursor, product_ids: Iterable[int]) -> Dict[int, List[Variant]]:
    """All live variants (master included) grouped by product id"""
    product_ids = list(product_ids)
    grouped = defaultdict(list)
    if not product_ids:
        return grouped

    cursor.execute(f"""
        SELECT {VARIANT_COLUMNS}
        FROM variants v
        JOIN products p ON p.id = v.product_id
        WHERE v.product_id = ANY(%s) AND v.deleted_at IS NULL
        ORDER BY v.position, v.id
    """, (product_ids,))

    for variant in build_variants(cursor, cursor.fetchall()):
        grouped[variant.product_id].append(variant)
    return grouped


class VariantRepository:
    """
    Repository for Variant data access

    "Available" variants are live variants of available products.
    """

    def find_by_id(self, variant_id: int) -> Optional[Variant]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {VARIANT_COLUMNS}
                FROM variants v
                JOIN products p ON p.id = v.product_id
                WHERE v.id = %s AND v.deleted_at IS NULL
            """, (variant_id,))

            row = cursor.fetchone()
            if not row:
                return None

            return build_variants(cursor, [row])[0]

        finally:
            cursor.close()
            conn.close()

    def find_available(self) -> List[Variant]:
        """Non-master variants of available products"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {VARIANT_COLUMNS}
                FROM variants v
                JOIN products p ON p.id = v.product_id
                WHERE v.is_master = FALSE
                  AND v.deleted_at IS NULL
                  AND {PRODUCT_AVAILABLE}
                ORDER BY v.product_id, v.position, v.id
            """)

            return build_variants(cursor, cursor.fetchall())

        finally:
            cursor.close()
            conn.close()

    def find_by_product(self, product_id: int, include_master: bool = True) -> List[Variant]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            master_condition = "" if include_master else "AND v.is_master = FALSE"
            cursor.execute(f"""
                SELECT {VARIANT_COLUMNS}
                FROM variants v
                JOIN products p ON p.id = v.product_id
                WHERE v.product_id = %s
                  AND v.deleted_at IS NULL
                  AND {PRODUCT_AVAILABLE}
                  {master_condition}
                ORDER BY v.position, v.id
            """, (product_id,))

            return build_variants(cursor, cursor.fetchall())

        finally:
            cursor.close()
            conn.close()
