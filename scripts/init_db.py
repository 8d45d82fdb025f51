#!/usr/bin/env python3
"""
Initialize the Storefront database
==================================

Creates every table declared in storefront.models and seeds the rows the API
expects to exist:
- roles: customer, admin
- a default store
- one payment method and one shipping method

Existing rows are left alone, so the script can be run repeatedly.

Usage:
    python3 scripts/init_db.py
"""
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).parent.parent / '.env')

from storefront.core.database import create_schema, get_db_connection_dict_with_retry
from storefront.core.logging_config import configure_logging


def seed_reference_data(cursor):
    for role in ('customer', 'admin'):
        cursor.execute("""
            INSERT INTO roles (name) SELECT %s
            WHERE NOT EXISTS (SELECT 1 FROM roles WHERE name = %s)
        """, (role, role))

    cursor.execute("""
        INSERT INTO stores (name, code, "default", default_currency)
        SELECT 'Storefront', 'default', TRUE, 'USD'
        WHERE NOT EXISTS (SELECT 1 FROM stores WHERE "default")
    """)

    cursor.execute("""
        INSERT INTO payment_methods (name, type, active, available_to_users, position)
        SELECT 'Check', 'check', TRUE, TRUE, 1
        WHERE NOT EXISTS (SELECT 1 FROM payment_methods)
    """)

    cursor.execute("""
        INSERT INTO shipping_methods (name, code, cost, available_to_users)
        SELECT 'Ground', 'GRND', 5.00, TRUE
        WHERE NOT EXISTS (SELECT 1 FROM shipping_methods)
    """)


def main():
    configure_logging()

    print("🔧 Creating schema...")
    create_schema()

    print("🌱 Seeding reference data...")
    conn = get_db_connection_dict_with_retry()
    cursor = conn.cursor()
    try:
        seed_reference_data(cursor)
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cursor.close()
        conn.close()

    print("✅ Database ready")


if __name__ == "__main__":
    main()
