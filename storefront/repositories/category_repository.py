"""
Category Repository - Data Access Layer for Taxons
"""
from collections import defaultdict
from typing import List, Optional

from storefront.domain.catalog import Taxon
from storefront.core.database import get_db_connection_dict

TAXON_COLUMNS = "id, parent_id, name, permalink, description, position, attachment_url"


class CategoryRepository:
    """Repository for the taxon tree"""

    def find_roots(self) -> List[Taxon]:
        """Root taxons with their direct children"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {TAXON_COLUMNS}
                FROM taxons
                WHERE parent_id IS NULL
                ORDER BY id
            """)
            roots = [dict(row) for row in cursor.fetchall()]
            children = self._load_children(cursor, [row['id'] for row in roots])

            return [Taxon(**row, children=children.get(row['id'], [])) for row in roots]

        finally:
            cursor.close()
            conn.close()

    def find_by_id(self, taxon_id: int) -> Optional[Taxon]:
        """Taxon with its children and parent"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"SELECT {TAXON_COLUMNS} FROM taxons WHERE id = %s", (taxon_id,))
            row = cursor.fetchone()
            if not row:
                return None

            row = dict(row)
            parent = None
            if row['parent_id'] is not None:
                cursor.execute(f"SELECT {TAXON_COLUMNS} FROM taxons WHERE id = %s", (row['parent_id'],))
                parent_row = cursor.fetchone()
                parent = Taxon(**parent_row) if parent_row else None

            children = self._load_children(cursor, [row['id']])
            return Taxon(**row, children=children.get(row['id'], []), parent=parent)

        finally:
            cursor.close()
            conn.close()

    def find_by_permalink(self, permalink: str) -> Optional[Taxon]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"SELECT {TAXON_COLUMNS} FROM taxons WHERE permalink = %s", (permalink,))
            row = cursor.fetchone()
            return Taxon(**row) if row else None

        finally:
            cursor.close()
            conn.close()

    def suggest_names(self, query: str, limit: int = 5) -> List[str]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT name FROM taxons
                WHERE name ILIKE %s
                ORDER BY name
                LIMIT %s
            """, (f"%{query}%", limit))
            return [row['name'] for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    @staticmethod
    def _load_children(cursor, parent_ids: List[int]):
        grouped = defaultdict(list)
        if not parent_ids:
            return grouped

        cursor.execute(f"""
            SELECT {TAXON_COLUMNS}
            FROM taxons
            WHERE parent_id = ANY(%s)
            ORDER BY position, id
        """, (parent_ids,))
        for row in cursor.fetchall():
            grouped[row['parent_id']].append(Taxon(**row))
        return grouped
