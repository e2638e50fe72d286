"""
Tests for saved search and execution storage.
"""
import pytest

from zpscraper.database import (
    db_add_execution,
    db_connect,
    db_create_saved_search,
    db_delete_saved_search,
    db_get_execution,
    db_get_saved_search,
    db_init,
    db_list_executions,
    db_list_saved_searches,
    execution_records,
)
from zpscraper.models import ListingRecord

SEARCH_URL = "https://www.zonaprop.com.ar/departamentos-venta-palermo.html"


@pytest.fixture
def conn(tmp_path):
    c = db_connect(str(tmp_path / "test.db"))
    db_init(c)
    yield c
    c.close()


def test_saved_search_crud(conn):
    created = db_create_saved_search(conn, "Palermo", SEARCH_URL)

    assert created["name"] == "Palermo"
    assert created["url"] == SEARCH_URL
    assert created["last_scraped_at"] is None
    assert db_get_saved_search(conn, created["id"]) == created
    assert [s["id"] for s in db_list_saved_searches(conn)] == [created["id"]]

    assert db_delete_saved_search(conn, created["id"])
    assert db_get_saved_search(conn, created["id"]) is None
    assert not db_delete_saved_search(conn, created["id"])


def test_init_is_idempotent(conn):
    db_init(conn)
    assert db_list_saved_searches(conn) == []


def test_executions(conn):
    search = db_create_saved_search(conn, "Palermo", SEARCH_URL)
    records = [
        ListingRecord(url="https://www.zonaprop.com.ar/propiedades/a-1.html", price=100000,
                      currency="USD", total_area=50),
        ListingRecord(url="https://www.zonaprop.com.ar/propiedades/b-2.html", name="Sin precio"),
    ]

    execution = db_add_execution(conn, search["id"], records)

    assert execution["saved_search_id"] == search["id"]
    assert execution["results_count"] == 2
    assert execution["results"][0]["price_per_m2"] == 2000
    assert db_get_saved_search(conn, search["id"])["last_scraped_at"] == execution["created_at"]
    assert [e["id"] for e in db_list_executions(conn, search["id"])] == [execution["id"]]

    rebuilt = execution_records(db_get_execution(conn, execution["id"]))
    assert rebuilt == records


def test_deleting_search_removes_executions(conn):
    search = db_create_saved_search(conn, "Palermo", SEARCH_URL)
    execution = db_add_execution(conn, search["id"], [])

    db_delete_saved_search(conn, search["id"])

    assert db_get_execution(conn, execution["id"]) is None
    assert db_list_executions(conn, search["id"]) == []
