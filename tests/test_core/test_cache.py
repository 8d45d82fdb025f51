"""
Unit tests for the catalog cache, order locks and pagination helpers
"""
import pytest
from contextlib import contextmanager

from storefront.core.cache import CatalogCache, build_cache_key
from storefront.core.errors import LockFailed
from storefront.core.order_mutex import OrderMutex
from storefront.core.pagination import make_page_params


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return CatalogCache(default_ttl=60, clock=clock)


class TestCatalogCache:

    def test_fetch_loads_once(self, cache):
        calls = []

        def loader():
            calls.append(1)
            return ['product']

        assert cache.fetch('products_index', loader) == ['product']
        assert cache.fetch('products_index', loader) == ['product']
        assert len(calls) == 1

    def test_entries_expire(self, cache, clock):
        cache.set('products_show_1', {'id': 1})

        clock.now += 59
        assert cache.get('products_show_1') == {'id': 1}

        clock.now += 1
        assert cache.get('products_show_1') is None

    def test_none_is_not_cached(self, cache):
        assert cache.fetch('products_show_404', lambda: None) is None
        assert len(cache) == 0

    def test_delete_matched(self, cache):
        cache.set('products_index_page_1', 1)
        cache.set('products_show_1', 2)
        cache.set('categories_index', 3)

        assert cache.delete_matched('products_*') == 2
        assert cache.get('categories_index') == 3
        assert cache.get('products_show_1') is None


class TestBuildCacheKey:

    def test_parameter_order_does_not_matter(self):
        assert build_cache_key('products_index', page=1, taxon_id=3) == \
            build_cache_key('products_index', taxon_id=3, page=1)

    def test_format(self):
        assert build_cache_key('products_index', taxon_id=None, page=2) == 'products_index_page_2_taxon_id_'


class TestOrderMutex:

    def test_second_acquire_fails(self):
        mutex = OrderMutex()

        with mutex.with_lock(100):
            with pytest.raises(LockFailed):
                with mutex.with_lock(100):
                    pass

        assert mutex.is_locked(100) is False

    def test_lock_released_after_exception(self):
        mutex = OrderMutex()

        with pytest.raises(ValueError):
            with mutex.with_lock(100):
                raise ValueError("boom")

        assert mutex.acquire(100) is True

    def test_locks_are_per_order(self):
        mutex = OrderMutex()

        with mutex.with_lock(100):
            with mutex.with_lock(101):
                assert mutex.is_locked(100)
                assert mutex.is_locked(101)

    def test_stale_lock_is_taken_over(self):
        mutex = OrderMutex(expires_after=0)

        assert mutex.acquire(100) is True
        assert mutex.acquire(100) is True


class TestOrderMutexAcrossWorkers:
    """The database advisory lock is taken inside the in-process lock"""

    @staticmethod
    def advisory(result, calls):
        @contextmanager
        def lock(key):
            calls.append(key)
            yield result
        return lock

    def test_lock_held_by_another_worker(self):
        calls = []
        mutex = OrderMutex(advisory_lock=self.advisory(False, calls))

        with pytest.raises(LockFailed):
            with mutex.with_lock(100):
                pytest.fail("body must not run")

        assert calls == [100]
        assert mutex.is_locked(100) is False

    def test_advisory_lock_taken(self):
        calls = []
        mutex = OrderMutex(advisory_lock=self.advisory(True, calls))

        with mutex.with_lock(100):
            assert mutex.is_locked(100)

        assert calls == [100]
        assert mutex.is_locked(100) is False

    def test_busy_in_process_skips_database(self):
        calls = []
        mutex = OrderMutex(advisory_lock=self.advisory(True, calls))
        mutex.acquire(100)

        with pytest.raises(LockFailed):
            with mutex.with_lock(100):
                pass

        assert calls == []


class TestPagination:

    def test_meta(self):
        params = make_page_params(page=2, per_page=6)

        assert params.offset == 6
        assert params.meta(13) == {'current_page': 2, 'total_pages': 3, 'total_count': 13}

    def test_empty_collection(self):
        assert make_page_params().meta(0)['total_pages'] == 0

    def test_per_page_is_clamped(self):
        assert make_page_params(per_page=10000).per_page == 100
        assert make_page_params(page=0).page == 1
