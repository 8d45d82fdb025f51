"""
Cart Service
Finds the order a request works on: the user's current cart or an order by
number/id the user is allowed to access
"""
import logging
from contextlib import contextmanager
from typing import Optional

from storefront.core.auth import authorize_order
from storefront.core.errors import NotFoundError
from storefront.core.order_mutex import order_mutex
from storefront.domain.order import Order
from storefront.domain.user import User
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.reference_repository import ReferenceRepository
from storefront.services.order_updater import OrderSaver

logger = logging.getLogger(__name__)

CURRENT_ORDER = "current"


class CartService:

    def __init__(
        self,
        repository: Optional[OrderRepository] = None,
        reference_repository: Optional[ReferenceRepository] = None,
        saver: Optional[OrderSaver] = None,
    ):
        self.repository = repository or OrderRepository()
        self.reference_repository = reference_repository or ReferenceRepository()
        self.saver = saver or OrderSaver(self.repository)

    def create_order(self, user: User) -> Order:
        """New empty order in the default store"""
        store = self.reference_repository.find_default_store()
        order = Order(
            user_id=user.id,
            email=user.email,
            store_id=store.id if store else None,
            currency=(store.default_currency if store and store.default_currency else "USD"),
        )
        self.saver.save(order)
        logger.info(f"Order {order.number} created for user {user.id}")
        return order

    def current_order(self, user: User) -> Order:
        """The user's incomplete order, created on first use"""
        order = self.repository.find_incomplete_for_user(user.id)
        if order is None:
            order = self.create_order(user)
        return order

    def find_order(self, identifier: str, user: User) -> Order:
        """
        Resolve "current" or an order number/id

        Raises:
            NotFoundError: no such order
            AuthorizationError: the order belongs to another user
        """
        if identifier == CURRENT_ORDER:
            return self.current_order(user)

        order = self.repository.find_by_id_or_number(identifier)
        if order is None:
            raise NotFoundError("Order not found")
        authorize_order(order, user)
        return order

    @contextmanager
    def locked_order(self, identifier: str, user: User):
        """
        Hold the order lock and yield the order as loaded under it

        Any earlier read of the order is discarded: the aggregate is reloaded
        once the lock is held, so changes committed by the previous holder are
        part of it.

        Raises:
            LockFailed: another request holds the lock
            NotFoundError: the order disappeared before the lock was taken
        """
        order = self.find_order(identifier, user)
        with order_mutex.with_lock(order.id):
            yield self._reload(order)

    @contextmanager
    def locked_current_order(self, user: User):
        """Like locked_order, for the user's cart"""
        order = self.current_order(user)
        with order_mutex.with_lock(order.id):
            yield self._reload(order)

    def _reload(self, order: Order) -> Order:
        fresh = self.repository.find_by_id(order.id)
        if fresh is None:
            raise NotFoundError("Order not found")
        return fresh
