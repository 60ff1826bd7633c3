import pytest
from sqlalchemy import text

from bankapi.clientdb import ClientTable
from bankapi.database import DataManager


@pytest.fixture
def clients():
    m = DataManager()
    m.open_url("sqlite://")
    with m.connection() as conn:
        conn.execute(text("CREATE TABLE clientdb (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT)"))
        conn.execute(text(
            "CREATE TABLE accountdb (id INTEGER PRIMARY KEY AUTOINCREMENT, client_id INTEGER, balance INTEGER)"
        ))
    yield ClientTable(m)
    m.disconnect()


def test_table_name(clients):
    assert clients.table_name == "clientdb"


def test_get_all_flags_accounts(clients):
    clients.insert({"name": "alice"})
    clients.insert({"name": "bob"})
    alice_id = clients.get_by_condition("name", "alice")["id"]
    with clients.manager.connection() as conn:
        conn.execute(text("INSERT INTO accountdb (client_id, balance) VALUES (:c, 0)"), {"c": alice_id})
    flags = {row["name"]: row["hasAccount"] for row in clients.get_all()}
    assert flags == {"alice": 1, "bob": 0}


def test_get_all_empty(clients):
    assert clients.get_all() == []


def test_update_and_remove(clients):
    clients.insert({"name": "carol"})
    row_id = clients.get_latest()["id"]
    clients.update(row_id, {"name": "caroline"})
    assert clients.get_by_id(row_id)["name"] == "caroline"
    clients.remove(row_id)
    assert clients.get_all() == []