"""
Unit tests for the PostgreSQL advisory lock helper
"""
import pytest
from unittest.mock import patch, call

from storefront.core.database import try_advisory_lock


class TestTryAdvisoryLock:

    @patch('storefront.core.database.get_db_connection_dict')
    def test_obtained_lock_is_released(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = {'locked': True}

        with try_advisory_lock(100) as locked:
            assert locked is True

        assert cursor.execute.call_args_list == [
            call("SELECT pg_try_advisory_lock(%s) AS locked", (100,)),
            call("SELECT pg_advisory_unlock(%s)", (100,)),
        ]
        assert conn.autocommit is True
        conn.close.assert_called_once()

    @patch('storefront.core.database.get_db_connection_dict')
    def test_lock_held_elsewhere(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = {'locked': False}

        with try_advisory_lock(100) as locked:
            assert locked is False

        cursor.execute.assert_called_once()
        conn.close.assert_called_once()

    @patch('storefront.core.database.get_db_connection_dict')
    def test_released_when_body_raises(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = {'locked': True}

        with pytest.raises(RuntimeError):
            with try_advisory_lock(100):
                raise RuntimeError("boom")

        cursor.execute.assert_called_with("SELECT pg_advisory_unlock(%s)", (100,))
        conn.close.assert_called_once()
