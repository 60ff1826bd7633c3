import pytest
from sqlalchemy import text

from bankapi.accountdb import AccountTable
from bankapi.database import Action, DataManager, DatabaseError

CARD_A = "B1457D09"
CARD_B = "F3CC65BD"
KEY_A = "12345678"
KEY_B = "87654321"


@pytest.fixture
def manager():
    mgr = DataManager(ssl_options={})
    mgr.open_url("sqlite://")
    with mgr.connection() as conn:
        conn.execute(text(
            "CREATE TABLE accountdb (id INTEGER PRIMARY KEY, client_id INTEGER, "
            "RFID_UUID TEXT, balance INTEGER)"
        ))
    yield mgr
    mgr.disconnect()


@pytest.fixture
def accounts(manager):
    table = AccountTable(manager)
    table.insert({"client_id": 1, "RFID_UUID": KEY_A, "balance": 1000})
    table.insert({"client_id": 2, "RFID_UUID": KEY_B, "balance": 50})
    return table


def balance(table, key):
    return table.get_by_condition(key, "")["balance"]


def test_get_by_condition_found_sets_success(accounts):
    row = accounts.get_by_condition(KEY_A, "ignored")
    assert row["success"] == 1
    assert row["client_id"] == 1
    assert row["balance"] == 1000


def test_get_by_condition_missing(accounts):
    assert accounts.get_by_condition("-1", "") == {}


def test_deposit_adds_amount(accounts):
    before = balance(accounts, KEY_A)
    assert accounts.deposit(CARD_A, "100") is True
    assert balance(accounts, KEY_A) - before == 100


def test_deposit_unknown_card(accounts):
    assert accounts.deposit("00000000", "100") is False


def test_withdraw_then_deposit_round_trip(accounts):
    before = balance(accounts, KEY_A)
    assert accounts.withdraw(CARD_A, 300) is True
    assert balance(accounts, KEY_A) == before - 300
    assert accounts.deposit(CARD_A, 300) is True
    assert balance(accounts, KEY_A) == before


def test_withdraw_insufficient_funds(accounts):
    before = balance(accounts, KEY_B)
    assert accounts.withdraw(CARD_B, 51) is False
    assert balance(accounts, KEY_B) == before


def test_withdraw_exact_balance(accounts):
    assert accounts.withdraw(CARD_B, 50) is True
    assert balance(accounts, KEY_B) == 0


def test_transfer_conserves_total(accounts):
    total = balance(accounts, KEY_A) + balance(accounts, KEY_B)
    assert accounts.transfer(CARD_A, KEY_B, 200) is True
    assert balance(accounts, KEY_B) - 50 == 200
    assert balance(accounts, KEY_A) + balance(accounts, KEY_B) == total


def test_transfer_unknown_receiver_rolls_back(accounts):
    before = balance(accounts, KEY_A)
    assert accounts.transfer(CARD_A, "-1", 200) is False
    assert balance(accounts, KEY_A) == before


def test_transfer_target_is_account_key_not_card(accounts):
    before = balance(accounts, KEY_A)
    assert accounts.transfer(CARD_A, CARD_B, 10) is False
    assert balance(accounts, KEY_A) == before


def test_transfer_insufficient_funds(accounts):
    before_a = balance(accounts, KEY_A)
    before_b = balance(accounts, KEY_B)
    assert accounts.transfer(CARD_B, KEY_A, 500) is False
    assert balance(accounts, KEY_A) == before_a
    assert balance(accounts, KEY_B) == before_b


def test_update_dispatches_deposit(accounts):
    before = balance(accounts, KEY_B)
    body = {"data": {"action": "Deposit", "UID": CARD_B, "amount": "25"}}
    assert accounts.update(Action.DEPOSIT, body) is True
    assert balance(accounts, KEY_B) - before == 25


def test_update_dispatches_withdraw(accounts):
    before = balance(accounts, KEY_A)
    body = {"data": {"UID": CARD_A, "amount": "40"}}
    assert accounts.update(1, body) is True
    assert before - balance(accounts, KEY_A) == 40


def test_update_dispatches_send(accounts):
    total = balance(accounts, KEY_A) + balance(accounts, KEY_B)
    body = {"data": {"UID": CARD_A, "targetUID": KEY_B, "amount": "70"}}
    assert accounts.update(2, body) is True
    assert balance(accounts, KEY_B) - 50 == 70
    assert balance(accounts, KEY_A) + balance(accounts, KEY_B) == total


def test_update_without_payload_fails(accounts):
    assert accounts.update(0, {}) is False


def test_update_unknown_action(accounts):
    with pytest.raises(ValueError):
        accounts.update(7, {"data": {"UID": CARD_A, "amount": "1"}})


def test_not_connected_raises():
    table = AccountTable(DataManager(ssl_options={}))
    with pytest.raises(DatabaseError):
        table.deposit(CARD_A, 1)