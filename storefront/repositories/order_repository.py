"""
Order Repository - Data Access Layer for Orders

Loads and persists the whole order aggregate (order row, addresses, line
items, payments, shipments with rates). save() writes everything in a single
transaction and only hands generated ids back to the in-memory objects after
the commit succeeded.
"""
from collections import defaultdict
from typing import List, Optional, Dict, Any, Callable

from storefront.domain.order import Order, LineItem, Payment, Shipment, ShippingRate, Address
from storefront.core.database import get_db_connection_dict
from storefront.repositories.variant_repository import build_variants, VARIANT_COLUMNS

ORDER_COLUMNS = """
    o.id, o.number, o.user_id, o.store_id, o.email, o.state, o.special_instructions,
    o.item_total, o.adjustment_total, o.shipment_total, o.payment_total, o.total, o.item_count,
    o.payment_state, o.shipment_state, o.currency,
    o.bill_address_id, o.ship_address_id,
    o.completed_at, o.created_at, o.updated_at
"""

ADDRESS_COLUMNS = """
    a.id, a.name, a.address1, a.address2, a.city, a.zipcode, a.phone, a.state_id, a.country_id,
    s.name as state_name, c.name as country_name
"""


class OrderRepository:
    """
    Repository for Order data access

    Aggregates are loaded in batches: one query per association for any
    number of orders.
    """

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @staticmethod
    def _load_addresses(cursor, address_ids: List[int]) -> Dict[int, Address]:
        if not address_ids:
            return {}
        cursor.execute(f"""
            SELECT {ADDRESS_COLUMNS}
            FROM addresses a
            LEFT JOIN states s ON s.id = a.state_id
            LEFT JOIN countries c ON c.id = a.country_id
            WHERE a.id = ANY(%s)
        """, (address_ids,))
        return {row['id']: Address(**row) for row in cursor.fetchall()}

    @staticmethod
    def _load_line_items(cursor, order_ids: List[int]) -> Dict[int, List[LineItem]]:
        grouped = defaultdict(list)
        cursor.execute("""
            SELECT id, order_id, variant_id, quantity, price, currency
            FROM line_items
            WHERE order_id = ANY(%s)
            ORDER BY id
        """, (order_ids,))
        rows = cursor.fetchall()
        if not rows:
            return grouped

        variant_ids = list({row['variant_id'] for row in rows})
        cursor.execute(f"""
            SELECT {VARIANT_COLUMNS}
            FROM variants v
            JOIN products p ON p.id = v.product_id
            WHERE v.id = ANY(%s)
        """, (variant_ids,))
        variants = {variant.id: variant for variant in build_variants(cursor, cursor.fetchall())}

        for row in rows:
            grouped[row['order_id']].append(LineItem(**row, variant=variants.get(row['variant_id'])))
        return grouped

    @staticmethod
    def _load_payments(cursor, order_ids: List[int]) -> Dict[int, List[Payment]]:
        grouped = defaultdict(list)
        cursor.execute("""
            SELECT
                pay.id, pay.order_id, pay.payment_method_id, pay.amount, pay.state, pay.number,
                pay.created_at,
                pm.name as payment_method_name, pm.type as payment_method_type
            FROM payments pay
            LEFT JOIN payment_methods pm ON pm.id = pay.payment_method_id
            WHERE pay.order_id = ANY(%s)
            ORDER BY pay.id
        """, (order_ids,))
        for row in cursor.fetchall():
            grouped[row['order_id']].append(Payment(**row))
        return grouped

    @staticmethod
    def _load_shipments(cursor, order_ids: List[int]) -> Dict[int, List[Shipment]]:
        grouped = defaultdict(list)
        cursor.execute("""
            SELECT id, order_id, number, state, cost, shipped_at
            FROM shipments
            WHERE order_id = ANY(%s)
            ORDER BY id
        """, (order_ids,))
        rows = cursor.fetchall()
        if not rows:
            return grouped

        cursor.execute("""
            SELECT sr.id, sr.shipment_id, sr.shipping_method_id, sr.cost, sr.selected,
                   sm.name as shipping_method_name
            FROM shipping_rates sr
            JOIN shipping_methods sm ON sm.id = sr.shipping_method_id
            WHERE sr.shipment_id = ANY(%s)
            ORDER BY sr.cost, sr.id
        """, ([row['id'] for row in rows],))
        rates = defaultdict(list)
        for rate in cursor.fetchall():
            rate = dict(rate)
            rates[rate.pop('shipment_id')].append(ShippingRate(**rate))

        for row in rows:
            grouped[row['order_id']].append(Shipment(**row, shipping_rates=rates.get(row['id'], [])))
        return grouped

    def _build_orders(self, cursor, rows) -> List[Order]:
        rows = [dict(row) for row in rows]
        if not rows:
            return []

        ids = [row['id'] for row in rows]
        address_ids = [
            address_id for row in rows
            for address_id in (row['bill_address_id'], row['ship_address_id'])
            if address_id is not None
        ]
        addresses = self._load_addresses(cursor, address_ids)
        line_items = self._load_line_items(cursor, ids)
        payments = self._load_payments(cursor, ids)
        shipments = self._load_shipments(cursor, ids)

        orders = []
        for row in rows:
            bill_address_id = row.pop('bill_address_id')
            ship_address_id = row.pop('ship_address_id')
            orders.append(Order(
                **row,
                bill_address=addresses.get(bill_address_id),
                ship_address=addresses.get(ship_address_id),
                line_items=line_items.get(row['id'], []),
                payments=payments.get(row['id'], []),
                shipments=shipments.get(row['id'], []),
            ))
        return orders

    def _find_one(self, condition: str, params) -> Optional[Order]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders o
                WHERE {condition}
                ORDER BY o.id DESC
                LIMIT 1
            """, params)
            row = cursor.fetchone()
            if not row:
                return None
            return self._build_orders(cursor, [row])[0]

        finally:
            cursor.close()
            conn.close()

    def find_by_id(self, order_id: int) -> Optional[Order]:
        return self._find_one("o.id = %s", (order_id,))

    def find_by_number(self, number: str) -> Optional[Order]:
        return self._find_one("o.number = %s", (number,))

    def find_by_id_or_number(self, identifier: str) -> Optional[Order]:
        """Orders are addressed by public number (R123...) or numeric id"""
        order = self.find_by_number(str(identifier))
        if order is None and str(identifier).isdigit():
            order = self.find_by_id(int(identifier))
        return order

    def find_incomplete_for_user(self, user_id: int) -> Optional[Order]:
        """Most recent order of the user that has not been completed (the cart)"""
        return self._find_one("o.user_id = %s AND o.completed_at IS NULL", (user_id,))

    def find_for_user(self, user_id: int) -> List[Order]:
        """All orders of a user, newest first"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders o
                WHERE o.user_id = %s
                ORDER BY o.created_at DESC, o.id DESC
            """, (user_id,))
            return self._build_orders(cursor, cursor.fetchall())

        finally:
            cursor.close()
            conn.close()

    # ------------------------------------------------------------------
    # Persisting
    # ------------------------------------------------------------------

    @staticmethod
    def _insert_address(cursor, address: Optional[Address], on_commit: List[Callable]) -> Optional[int]:
        """Addresses are immutable rows: only new ones are written"""
        if address is None:
            return None
        if address.id is not None:
            return address.id

        cursor.execute("""
            INSERT INTO addresses (name, address1, address2, city, zipcode, phone, state_id, country_id)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id
        """, (address.name, address.address1, address.address2, address.city,
              address.zipcode, address.phone, address.state_id, address.country_id))
        address_id = cursor.fetchone()['id']
        on_commit.append(lambda: setattr(address, 'id', address_id))
        return address_id

    @staticmethod
    def _order_values(order: Order, bill_address_id, ship_address_id) -> List[Any]:
        return [
            order.number, order.user_id, order.store_id, order.email, order.state,
            order.special_instructions,
            order.item_total, order.adjustment_total, order.shipment_total,
            order.payment_total, order.total, order.item_count,
            order.payment_state, order.shipment_state, order.currency,
            bill_address_id, ship_address_id, order.completed_at,
        ]

    def save(self, order: Order) -> Order:
        """
        Persist the order aggregate in one transaction

        New rows (id None) are inserted, existing rows updated, line items
        removed from the aggregate are deleted. On failure nothing is written
        and the in-memory objects keep their previous ids.
        """
        on_commit: List[Callable] = []

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            bill_address_id = self._insert_address(cursor, order.bill_address, on_commit)
            ship_address_id = self._insert_address(cursor, order.ship_address, on_commit)
            values = self._order_values(order, bill_address_id, ship_address_id)

            if order.id is None:
                cursor.execute("""
                    INSERT INTO orders (
                        number, user_id, store_id, email, state, special_instructions,
                        item_total, adjustment_total, shipment_total, payment_total, total, item_count,
                        payment_state, shipment_state, currency,
                        bill_address_id, ship_address_id, completed_at,
                        created_at, updated_at
                    ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, NOW(), NOW())
                    RETURNING id, created_at, updated_at
                """, values)
                inserted = cursor.fetchone()
                order_id = inserted['id']
                on_commit.append(lambda: setattr(order, 'id', order_id))
                on_commit.append(lambda: setattr(order, 'created_at', inserted['created_at']))
            else:
                order_id = order.id
                cursor.execute("""
                    UPDATE orders SET
                        number = %s, user_id = %s, store_id = %s, email = %s, state = %s,
                        special_instructions = %s,
                        item_total = %s, adjustment_total = %s, shipment_total = %s,
                        payment_total = %s, total = %s, item_count = %s,
                        payment_state = %s, shipment_state = %s, currency = %s,
                        bill_address_id = %s, ship_address_id = %s, completed_at = %s,
                        updated_at = NOW()
                    WHERE id = %s
                    RETURNING updated_at
                """, values + [order_id])
                updated = cursor.fetchone()
                on_commit.append(lambda: setattr(order, 'updated_at', updated['updated_at']))

            if order.removed_line_item_ids:
                cursor.execute("""
                    DELETE FROM line_items WHERE order_id = %s AND id = ANY(%s)
                """, (order_id, list(order.removed_line_item_ids)))

            for line_item in order.line_items:
                self._save_line_item(cursor, order_id, line_item, on_commit)

            for payment in order.payments:
                self._save_payment(cursor, order_id, payment, on_commit)

            shipment_ids = [
                self._save_shipment(cursor, order_id, shipment, on_commit)
                for shipment in order.shipments
            ]
            # Shipments dropped from the aggregate (cart emptied, delivery restarted)
            cursor.execute("""
                DELETE FROM shipments WHERE order_id = %s AND NOT (id = ANY(%s))
            """, (order_id, shipment_ids))

            conn.commit()

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

        for apply in on_commit:
            apply()
        order.clear_removed_line_items()
        return order

    @staticmethod
    def _save_line_item(cursor, order_id: int, line_item: LineItem, on_commit: List[Callable]):
        if line_item.id is None:
            cursor.execute("""
                INSERT INTO line_items (order_id, variant_id, quantity, price, currency, created_at, updated_at)
                VALUES (%s, %s, %s, %s, %s, NOW(), NOW())
                RETURNING id
            """, (order_id, line_item.variant_id, line_item.quantity, line_item.price, line_item.currency))
            line_item_id = cursor.fetchone()['id']
            on_commit.append(lambda: line_item.__setattr__('id', line_item_id))
            on_commit.append(lambda: line_item.__setattr__('order_id', order_id))
        else:
            cursor.execute("""
                UPDATE line_items SET quantity = %s, price = %s, updated_at = NOW()
                WHERE id = %s AND order_id = %s
            """, (line_item.quantity, line_item.price, line_item.id, order_id))

    @staticmethod
    def _save_payment(cursor, order_id: int, payment: Payment, on_commit: List[Callable]):
        if payment.id is None:
            cursor.execute("""
                INSERT INTO payments (order_id, payment_method_id, amount, state, number, created_at, updated_at)
                VALUES (%s, %s, %s, %s, %s, NOW(), NOW())
                RETURNING id
            """, (order_id, payment.payment_method_id, payment.amount, payment.state, payment.number))
            payment_id = cursor.fetchone()['id']
            on_commit.append(lambda: payment.__setattr__('id', payment_id))
            on_commit.append(lambda: payment.__setattr__('order_id', order_id))
        else:
            cursor.execute("""
                UPDATE payments SET amount = %s, state = %s, updated_at = NOW()
                WHERE id = %s AND order_id = %s
            """, (payment.amount, payment.state, payment.id, order_id))

    @staticmethod
    def _save_shipment(cursor, order_id: int, shipment: Shipment, on_commit: List[Callable]):
        if shipment.id is None:
            cursor.execute("""
                INSERT INTO shipments (order_id, number, state, cost, shipped_at, created_at)
                VALUES (%s, %s, %s, %s, %s, NOW())
                RETURNING id
            """, (order_id, shipment.number, shipment.state, shipment.cost, shipment.shipped_at))
            shipment_id = cursor.fetchone()['id']
            on_commit.append(lambda: shipment.__setattr__('id', shipment_id))
            on_commit.append(lambda: shipment.__setattr__('order_id', order_id))
        else:
            shipment_id = shipment.id
            cursor.execute("""
                UPDATE shipments SET state = %s, cost = %s, shipped_at = %s
                WHERE id = %s AND order_id = %s
            """, (shipment.state, shipment.cost, shipment.shipped_at, shipment_id, order_id))

        for rate in shipment.shipping_rates:
            if rate.id is None:
                cursor.execute("""
                    INSERT INTO shipping_rates (shipment_id, shipping_method_id, cost, selected)
                    VALUES (%s, %s, %s, %s)
                    RETURNING id
                """, (shipment_id, rate.shipping_method_id, rate.cost, rate.selected))
                rate_id = cursor.fetchone()['id']
                on_commit.append(lambda rate=rate, rate_id=rate_id: rate.__setattr__('id', rate_id))
            else:
                cursor.execute("""
                    UPDATE shipping_rates SET selected = %s WHERE id = %s
                """, (rate.selected, rate.id))

        return shipment_id

    def delete(self, order_id: int) -> bool:
        """Delete an order; child rows go with it (ON DELETE CASCADE)"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("DELETE FROM orders WHERE id = %s", (order_id,))
            deleted = cursor.rowcount > 0
            conn.commit()
            return deleted

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()
