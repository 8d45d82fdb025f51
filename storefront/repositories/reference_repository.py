"""
Reference Repository - countries, states, payment/shipping methods, stores
"""
from collections import defaultdict
from typing import List, Optional

from storefront.domain.reference import Country, State, PaymentMethod, ShippingMethod, Store
from storefront.core.database import get_db_connection_dict


class ReferenceRepository:
    """Read-only lookups used by the checkout and address forms"""

    def list_countries(self) -> List[Country]:
        """Countries by name, each with its states"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("SELECT id, iso, iso3, name, states_required FROM countries ORDER BY name")
            countries = cursor.fetchall()

            cursor.execute("SELECT id, country_id, name, abbr FROM states ORDER BY name")
            states = defaultdict(list)
            for row in cursor.fetchall():
                states[row['country_id']].append(State(**row))

            return [Country(**row, states=states.get(row['id'], [])) for row in countries]

        finally:
            cursor.close()
            conn.close()

    def list_states(self, country_id: int) -> List[State]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, country_id, name, abbr
                FROM states
                WHERE country_id = %s
                ORDER BY name
            """, (country_id,))
            return [State(**row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def list_payment_methods(self) -> List[PaymentMethod]:
        """Active payment methods offered to storefront users"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, name, type, description, active, available_to_users, position
                FROM payment_methods
                WHERE active = TRUE AND available_to_users = TRUE
                ORDER BY position, id
            """)
            return [PaymentMethod(**row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_payment_method(self, payment_method_id: int) -> Optional[PaymentMethod]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, name, type, description, active, available_to_users, position
                FROM payment_methods
                WHERE id = %s AND active = TRUE
            """, (payment_method_id,))
            row = cursor.fetchone()
            return PaymentMethod(**row) if row else None

        finally:
            cursor.close()
            conn.close()

    def list_shipping_methods(self) -> List[ShippingMethod]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, name, code, carrier, service_level, cost, available_to_users
                FROM shipping_methods
                WHERE available_to_users = TRUE
                ORDER BY cost, id
            """)
            return [ShippingMethod(**row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_store(self, store_id: int) -> Optional[Store]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, name, url, code, "default", default_currency, mail_from_address, hero_image_url
                FROM stores
                WHERE id = %s
            """, (store_id,))
            row = cursor.fetchone()
            return Store(**row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_default_store(self) -> Optional[Store]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, name, url, code, "default", default_currency, mail_from_address, hero_image_url
                FROM stores
                ORDER BY "default" DESC, id
                LIMIT 1
            """)
            row = cursor.fetchone()
            return Store(**row) if row else None

        finally:
            cursor.close()
            conn.close()
