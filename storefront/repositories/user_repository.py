"""
User Repository - Data Access Layer for Users, roles and address books
"""
from typing import List, Optional

from storefront.domain.order import Address
from storefront.domain.user import User, UserAddress
from storefront.core.database import get_db_connection_dict

USER_COLUMNS = """
    u.id, u.email, u.encrypted_password, u.api_key, u.firstname, u.lastname, u.phone_number,
    u.confirmation_token, u.confirmation_sent_at, u.confirmed_at,
    u.phone_verified, u.phone_verification_token, u.phone_verification_sent_at,
    u.reset_password_token, u.reset_password_sent_at,
    u.created_at, u.updated_at,
    ARRAY(
        SELECT r.name FROM role_users ru JOIN roles r ON r.id = ru.role_id
        WHERE ru.user_id = u.id ORDER BY r.name
    ) as roles
"""

# Columns written back by update()
UPDATABLE_FIELDS = [
    'email', 'encrypted_password', 'api_key', 'firstname', 'lastname', 'phone_number',
    'confirmation_token', 'confirmation_sent_at', 'confirmed_at',
    'phone_verified', 'phone_verification_token', 'phone_verification_sent_at',
    'reset_password_token', 'reset_password_sent_at',
]


class UserRepository:
    """
    Repository for User data access

    Lookups by credential (api key, tokens) return None for blank input
    so callers never match a NULL column.
    """

    def _find_one(self, condition: str, value) -> Optional[User]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {USER_COLUMNS}
                FROM users u
                WHERE {condition}
            """, (value,))
            row = cursor.fetchone()
            return User(**row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_by_id(self, user_id: int) -> Optional[User]:
        return self._find_one("u.id = %s", user_id)

    def find_by_email(self, email: str) -> Optional[User]:
        if not email:
            return None
        return self._find_one("LOWER(u.email) = LOWER(%s)", email)

    def find_by_api_key(self, api_key: str) -> Optional[User]:
        if not api_key:
            return None
        return self._find_one("u.api_key = %s", api_key)

    def find_by_phone_number(self, phone_number: str) -> Optional[User]:
        if not phone_number:
            return None
        return self._find_one("u.phone_number = %s", phone_number)

    def find_by_confirmation_token(self, token: str) -> Optional[User]:
        if not token:
            return None
        return self._find_one("u.confirmation_token = %s", token)

    def find_by_reset_password_token(self, token: str) -> Optional[User]:
        if not token:
            return None
        return self._find_one("u.reset_password_token = %s", token)

    def create(self, user: dict, role_name: Optional[str] = None) -> User:
        """
        Insert a user and optionally attach a role, in one transaction

        Args:
            user: Column values (email, encrypted_password, api_key, ...)
            role_name: Role to attach when it exists (e.g. "customer")
        """
        columns = [field for field in UPDATABLE_FIELDS if field in user]

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO users ({", ".join(columns)}, created_at, updated_at)
                VALUES ({", ".join(["%s"] * len(columns))}, NOW(), NOW())
                RETURNING id
            """, [user[field] for field in columns])
            user_id = cursor.fetchone()['id']

            if role_name:
                self._add_role(cursor, user_id, role_name)

            conn.commit()

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

        return self.find_by_id(user_id)

    def update(self, user: User) -> User:
        """Write every mutable column of the user"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            assignments = ", ".join(f"{field} = %s" for field in UPDATABLE_FIELDS)
            cursor.execute(f"""
                UPDATE users
                SET {assignments}, updated_at = NOW()
                WHERE id = %s
            """, [getattr(user, field) for field in UPDATABLE_FIELDS] + [user.id])
            conn.commit()
            return user

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def email_taken(self, email: str, exclude_user_id: Optional[int] = None) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT 1 FROM users
                WHERE LOWER(email) = LOWER(%s) AND (%s::INTEGER IS NULL OR id <> %s)
            """, (email, exclude_user_id, exclude_user_id))
            return cursor.fetchone() is not None

        finally:
            cursor.close()
            conn.close()

    def add_role(self, user_id: int, role_name: str):
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            self._add_role(cursor, user_id, role_name)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    @staticmethod
    def _add_role(cursor, user_id: int, role_name: str):
        """Attach an existing role; unknown role names are ignored"""
        cursor.execute("""
            INSERT INTO role_users (user_id, role_id)
            SELECT %s, id FROM roles WHERE name = %s
            ON CONFLICT DO NOTHING
        """, (user_id, role_name))

    def find_addresses(self, user_id: int) -> List[UserAddress]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT
                    a.id, a.name, a.address1, a.address2, a.city, a.zipcode, a.phone,
                    a.state_id, a.country_id,
                    s.name as state_name, c.name as country_name,
                    ua."default", ua.default_billing
                FROM user_addresses ua
                JOIN addresses a ON a.id = ua.address_id
                LEFT JOIN states s ON s.id = a.state_id
                LEFT JOIN countries c ON c.id = a.country_id
                WHERE ua.user_id = %s
                ORDER BY ua.id
            """, (user_id,))

            addresses = []
            for row in cursor.fetchall():
                row = dict(row)
                default = row.pop('default')
                default_billing = row.pop('default_billing')
                addresses.append(UserAddress(address=Address(**row), default=default, default_billing=default_billing))
            return addresses

        finally:
            cursor.close()
            conn.close()

    def add_address(self, user_id: int, address: Address, default: bool = False,
                    default_billing: bool = False) -> UserAddress:
        """Insert an address into the user's address book"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO addresses (name, address1, address2, city, zipcode, phone, state_id, country_id)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING id
            """, (address.name, address.address1, address.address2, address.city,
                  address.zipcode, address.phone, address.state_id, address.country_id))
            address_id = cursor.fetchone()['id']

            if default:
                cursor.execute('UPDATE user_addresses SET "default" = FALSE WHERE user_id = %s', (user_id,))
            if default_billing:
                cursor.execute('UPDATE user_addresses SET default_billing = FALSE WHERE user_id = %s', (user_id,))

            cursor.execute("""
                INSERT INTO user_addresses (user_id, address_id, "default", default_billing)
                VALUES (%s, %s, %s, %s)
            """, (user_id, address_id, default, default_billing))

            conn.commit()

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

        saved = address.model_copy(update={'id': address_id})
        return UserAddress(address=saved, default=default, default_billing=default_billing)

    def order_stats(self, user_id: int) -> dict:
        """Number of orders and amount spent on completed orders"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT
                    COUNT(*) as orders_count,
                    COALESCE(SUM(total) FILTER (WHERE state = 'complete'), 0) as total_spent
                FROM orders
                WHERE user_id = %s
            """, (user_id,))
            row = cursor.fetchone()
            return {
                'orders_count': row['orders_count'],
                'total_spent': float(row['total_spent']),
            }

        finally:
            cursor.close()
            conn.close()
