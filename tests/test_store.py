"""
Tests for the SQLite entity store.

Runs against an in-memory database with the real migrations applied.
"""

import re

import pytest

from clarity_finance.models.entities import EntityType
from clarity_finance.models.results import ErrorKind
from clarity_finance.services.storage import MEMORY_PATH, DatabaseContext, SQLiteEntityStore

TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{6}Z$")

CHASE_CHECKING = {
    "bank_name": "Chase",
    "account_type": "checking",
    "starting_balance": 1000,
}


def count_rows(store, table):
    return store.raw_execute(f"SELECT COUNT(*) AS n FROM {table}").unwrap()[0]["n"]


def bucket_id(store, key):
    return store.query("buckets", {"bucket_key": key}).unwrap()[0]["id"]


class TestInsert:
    """Validated inserts."""

    def test_insert_returns_stored_record(self, store):
        """Test the stored row comes back with managed fields."""
        result = store.insert("accounts", CHASE_CHECKING)
        assert result.ok

        record = result.data
        assert isinstance(record["id"], int)
        assert record["bank_name"] == "Chase"
        assert record["starting_balance"] == 1000.0
        assert record["is_deleted"] is False
        assert record["created_at"] == record["updated_at"]
        assert TIMESTAMP_RE.match(record["created_at"])

    def test_caller_cannot_set_managed_fields(self, store):
        """Test id / timestamps / is_deleted from the caller are ignored."""
        record = store.insert("accounts", {
            **CHASE_CHECKING,
            "id": 500,
            "created_at": "1999-01-01T00:00:00.000000Z",
            "is_deleted": 1,
        }).unwrap()
        assert record["id"] != 500
        assert record["created_at"] != "1999-01-01T00:00:00.000000Z"
        assert record["is_deleted"] is False

    def test_validation_failure_writes_nothing(self, store):
        """Test rejected records never reach storage."""
        result = store.insert("accounts", {**CHASE_CHECKING, "account_type": "brokerage"})
        assert result.kind == ErrorKind.VALIDATION_ERROR
        assert count_rows(store, "accounts") == 0

    def test_non_finite_amount_writes_nothing(self, store, account):
        """Test NaN is a validation error, never a stored NULL or a database error."""
        result = store.insert("transactions", {
            "date": "2024-01-15",
            "type": "income",
            "amount": float("nan"),
            "account_id": account["id"],
        })
        assert result.kind == ErrorKind.VALIDATION_ERROR
        assert count_rows(store, "transactions") == 0

        result = store.insert("goals", {
            "name": "Vacation",
            "target_amount": 3000,
            "target_date": "2025-06-01",
            "funded_amount": float("nan"),
        })
        assert result.kind == ErrorKind.VALIDATION_ERROR
        assert count_rows(store, "goals") == 0

    def test_unclassified_expense_lists_every_problem(self, store):
        """Test a missing date and missing classification come back together."""
        result = store.insert("transactions", {"type": "expense", "amount": 50, "account_id": 1})
        errors = result.error.details["errors"]
        assert result.kind == ErrorKind.VALIDATION_ERROR
        assert "date: Field required" in errors
        assert any(e.startswith("bucket_id: Expense transactions require") for e in errors)
        assert count_rows(store, "transactions") == 0

    def test_unknown_entity_type(self, store):
        """Test unknown entity types fail validation."""
        result = store.insert("widgets", {"name": "x"})
        assert result.kind == ErrorKind.VALIDATION_ERROR
        assert result.error.message == "Unknown entity type: widgets"

    def test_foreign_key_violation(self, store):
        """Test the storage engine enforces references."""
        result = store.insert("income_sources", {
            "source_name": "Acme Payroll",
            "income_type": "w2",
            "amount": 2500,
            "account_id": 999,
            "pay_dates": "[1, 15]",
        })
        assert result.kind == ErrorKind.DATABASE_ERROR
        assert "FOREIGN KEY constraint failed" in result.error.message
        assert result.is_retryable
        assert count_rows(store, "income_sources") == 0

    def test_entity_type_enum_accepted(self, store):
        """Test EntityType and its string value are interchangeable."""
        assert store.insert(EntityType.ACCOUNTS, CHASE_CHECKING).ok


class TestReads:
    """get_by_id and query."""

    def test_get_by_id(self, store, account):
        """Test fetching a live record."""
        result = store.get_by_id("accounts", account["id"])
        assert result.ok
        assert result.data == account

    def test_get_missing(self, store):
        """Test a missing id is NOT_FOUND."""
        result = store.get_by_id("accounts", 12345)
        assert result.kind == ErrorKind.NOT_FOUND
        assert not result.is_retryable

    def test_seeded_buckets(self, store):
        """Test the initial migration seeds five buckets."""
        buckets = store.query("buckets", order_by="sort_order").unwrap()
        assert [b["bucket_key"] for b in buckets] == [
            "major_fixed",
            "major_variable",
            "minor_fixed",
            "minor_variable",
            "goals",
        ]
        assert buckets[0]["color"] == "#3B82F6"

    def test_query_filters(self, store):
        """Test filters narrow results."""
        store.insert("accounts", CHASE_CHECKING)
        store.insert("accounts", {"bank_name": "Ally", "account_type": "savings", "starting_balance": 5000})
        store.insert("accounts", {"bank_name": "Amex", "account_type": "credit", "starting_balance": -200})

        rows = store.query("accounts", {"account_type": {"in": ["savings", "credit"]}}).unwrap()
        assert {r["bank_name"] for r in rows} == {"Ally", "Amex"}

        rows = store.query("accounts", {"starting_balance": {"gt": 0}}).unwrap()
        assert {r["bank_name"] for r in rows} == {"Chase", "Ally"}

    def test_query_order_and_limit(self, store):
        """Test ordering and LIMIT."""
        for balance in (300, 100, 200):
            store.insert("accounts", {**CHASE_CHECKING, "starting_balance": balance})

        rows = store.query("accounts", order_by="starting_balance", order="desc", limit=2).unwrap()
        assert [r["starting_balance"] for r in rows] == [300.0, 200.0]

    def test_query_null_filter(self, store, account):
        """Test None matches NULL columns."""
        store.insert("transactions", {
            "date": "2024-01-01",
            "type": "income",
            "amount": 100,
            "account_id": account["id"],
        })
        rows = store.query("transactions", {"bucket_id": None}).unwrap()
        assert len(rows) == 1

    @pytest.mark.parametrize("options", [
        {"order_by": "starting_balance; DROP TABLE accounts"},
        {"order_by": "bank_name", "order": "sideways"},
        {"limit": 0},
        {"limit": "10"},
    ])
    def test_invalid_query_options(self, store, options):
        """Test bad ordering/limit options are rejected before storage."""
        result = store.query("accounts", **options)
        assert result.kind == ErrorKind.INVALID_FILTER

    def test_invalid_filter(self, store):
        """Test grammar errors surface as INVALID_FILTER."""
        result = store.query("accounts", {"bank_name": {"like": "C%"}})
        assert result.kind == ErrorKind.INVALID_FILTER

    def test_unknown_column(self, store):
        """Test a well-formed filter on a missing column is a storage error."""
        result = store.query("accounts", {"nickname": "main"})
        assert result.kind == ErrorKind.DATABASE_ERROR
        assert "no such column" in result.error.message


class TestUpdate:
    """Partial updates."""

    def test_update_changes_fields(self, store, account):
        """Test supplied fields change and timestamps move forward."""
        result = store.update("accounts", account["id"], {"starting_balance": 1250})
        assert result.ok

        updated = result.data
        assert updated["starting_balance"] == 1250.0
        assert updated["bank_name"] == "Chase"
        assert updated["created_at"] == account["created_at"]
        assert updated["updated_at"] > account["updated_at"]

    def test_updated_at_strictly_increases(self, store, account):
        """Test back-to-back updates get ordered timestamps."""
        stamps = [account["updated_at"]]
        for balance in (1, 2, 3):
            stamps.append(
                store.update("accounts", account["id"], {"starting_balance": balance}).unwrap()["updated_at"]
            )
        assert stamps == sorted(stamps)
        assert len(set(stamps)) == len(stamps)

    def test_update_missing(self, store):
        """Test updating a missing id is NOT_FOUND."""
        result = store.update("accounts", 999, {"bank_name": "Ally"})
        assert result.kind == ErrorKind.NOT_FOUND

    def test_invalid_update_changes_nothing(self, store, account):
        """Test a rejected update leaves the row as it was."""
        result = store.update("accounts", account["id"], {"starting_balance_date": "yesterday"})
        assert result.kind == ErrorKind.VALIDATION_ERROR
        assert store.get_by_id("accounts", account["id"]).data == account

    def test_bucket_key_not_editable(self, store):
        """Test seeded bucket keys survive an update."""
        major = bucket_id(store, "major_fixed")
        updated = store.update("buckets", major, {"name": "Housing", "bucket_key": "housing"}).unwrap()
        assert updated["name"] == "Housing"
        assert updated["bucket_key"] == "major_fixed"


class TestSoftDelete:
    """Soft delete semantics."""

    def test_soft_delete(self, store, account):
        """Test deleted records disappear from default reads."""
        result = store.soft_delete("accounts", account["id"])
        assert result.ok
        assert result.data == {"id": account["id"], "deleted": True}

        assert store.get_by_id("accounts", account["id"]).kind == ErrorKind.NOT_FOUND
        assert store.query("accounts").unwrap() == []

    def test_deleted_rows_are_kept(self, store, account):
        """Test the row is flagged, not removed."""
        store.soft_delete("accounts", account["id"])

        hidden = store.get_by_id("accounts", account["id"], include_deleted=True).unwrap()
        assert hidden["is_deleted"] is True
        assert hidden["updated_at"] > account["updated_at"]
        assert len(store.query("accounts", include_deleted=True).unwrap()) == 1
        assert count_rows(store, "accounts") == 1

    def test_delete_twice(self, store, account):
        """Test deleting an already-deleted record is NOT_FOUND."""
        store.soft_delete("accounts", account["id"])
        assert store.soft_delete("accounts", account["id"]).kind == ErrorKind.NOT_FOUND

    def test_update_deleted(self, store, account):
        """Test deleted records cannot be updated."""
        store.soft_delete("accounts", account["id"])
        result = store.update("accounts", account["id"], {"bank_name": "Chase Bank"})
        assert result.kind == ErrorKind.NOT_FOUND


class TestEvents:
    """Notifications after committed mutations."""

    def test_lifecycle_events(self, store, recorder):
        """Test created / updated / deleted events with their payloads."""
        received = recorder("account:created", "account:updated", "account:deleted")

        record = store.insert("accounts", CHASE_CHECKING).unwrap()
        store.update("accounts", record["id"], {"bank_name": "Chase Bank"})
        store.soft_delete("accounts", record["id"])

        assert [m.name for m in received] == ["account:created", "account:updated", "account:deleted"]
        assert received[0].payload["id"] == record["id"]
        assert received[1].payload["bank_name"] == "Chase Bank"
        assert received[2].payload == {"id": record["id"], "deleted": True}

    def test_no_event_on_failure(self, store, recorder):
        """Test rejected writes publish nothing."""
        received = recorder("account:created")
        store.insert("accounts", {"bank_name": "Chase"})
        assert received == []

    def test_failing_listener_does_not_fail_write(self, store, bus):
        """Test a broken subscriber cannot undo a committed insert."""
        def broken(message):
            raise RuntimeError("listener blew up")

        bus.on("account:created", broken)
        result = store.insert("accounts", CHASE_CHECKING)
        assert result.ok
        assert count_rows(store, "accounts") == 1

    def test_store_without_bus(self, context):
        """Test events are optional."""
        store = SQLiteEntityStore(context)
        assert store.insert("accounts", CHASE_CHECKING).ok


class TestRawExecute:
    """The raw statement escape hatch."""

    def test_select_returns_rows(self, store, account):
        rows = store.raw_execute("SELECT bank_name FROM accounts WHERE id = ?", [account["id"]]).unwrap()
        assert rows == [{"bank_name": "Chase"}]

    def test_write_returns_rowcount(self, store, account):
        result = store.raw_execute("UPDATE accounts SET starting_balance = 0").unwrap()
        assert result["rowcount"] == 1

    def test_bad_sql(self, store):
        result = store.raw_execute("SELEKT 1")
        assert result.kind == ErrorKind.DATABASE_ERROR


class TestClosedContext:
    """Storage faults come back as results."""

    def test_operations_after_close(self):
        """Test a closed connection yields DATABASE_ERROR, never an exception."""
        context = DatabaseContext(MEMORY_PATH)
        store = SQLiteEntityStore(context)

        assert store.insert("accounts", CHASE_CHECKING).kind == ErrorKind.DATABASE_ERROR
        assert store.get_by_id("accounts", 1).kind == ErrorKind.DATABASE_ERROR
        assert store.query("accounts").kind == ErrorKind.DATABASE_ERROR
        assert store.raw_execute("SELECT 1").kind == ErrorKind.DATABASE_ERROR


class TestEndToEnd:
    """A realistic month of bookkeeping."""

    def test_expense_workflow(self, store):
        """Test account -> category -> expense -> month query."""
        chase = store.insert("accounts", CHASE_CHECKING).unwrap()
        minor_variable = bucket_id(store, "minor_variable")
        groceries = store.insert("categories", {
            "name": "Groceries",
            "bucket_id": minor_variable,
        }).unwrap()

        expense = store.insert("transactions", {
            "date": "2024-01-15",
            "type": "expense",
            "amount": 82.45,
            "description": "Trader Joe's",
            "account_id": chase["id"],
            "bucket_id": minor_variable,
            "category_id": groceries["id"],
        })
        assert expense.ok

        store.insert("transactions", {
            "date": "2024-02-01",
            "type": "expense",
            "amount": 20,
            "account_id": chase["id"],
            "bucket_id": minor_variable,
            "category_id": groceries["id"],
        })

        january = store.query("transactions", {
            "type": "expense",
            "date": {"between": ["2024-01-01", "2024-01-31"]},
        }).unwrap()
        assert [t["description"] for t in january] == ["Trader Joe's"]
        assert january[0]["amount"] == 82.45

        unclassified = store.insert("transactions", {
            "date": "2024-01-20",
            "type": "expense",
            "amount": 5,
            "account_id": chase["id"],
        })
        assert unclassified.kind == ErrorKind.VALIDATION_ERROR
        assert "Expense transactions require bucket_id and category_id" in unclassified.error.message


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
