"""
Rating Repository - product reviews attached to purchased line items
"""
from typing import List, Optional

from storefront.domain.reference import Rating
from storefront.core.database import get_db_connection_dict


class RatingRepository:

    def create(self, rating: Rating) -> Rating:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO ratings (line_item_id, user_id, rating, comment, created_at, updated_at)
                VALUES (%s, %s, %s, %s, NOW(), NOW())
                RETURNING id, created_at
            """, (rating.line_item_id, rating.user_id, rating.rating, rating.comment))
            row = cursor.fetchone()
            conn.commit()

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

        return rating.model_copy(update={'id': row['id'], 'created_at': row['created_at']})

    def find_by_line_item(self, line_item_id: int) -> Optional[Rating]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, line_item_id, user_id, rating, comment, created_at
                FROM ratings
                WHERE line_item_id = %s
                ORDER BY id DESC
                LIMIT 1
            """, (line_item_id,))
            row = cursor.fetchone()
            return Rating(**row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_for_product(self, product_id: int, limit: int = 20) -> List[Rating]:
        """Latest ratings given to any variant of the product"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT r.id, r.line_item_id, r.user_id, r.rating, r.comment, r.created_at
                FROM ratings r
                JOIN line_items li ON li.id = r.line_item_id
                JOIN variants v ON v.id = li.variant_id
                WHERE v.product_id = %s
                ORDER BY r.created_at DESC, r.id DESC
                LIMIT %s
            """, (product_id, limit))
            return [Rating(**row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()
