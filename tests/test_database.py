import pytest

from storefront.database import ConstraintError, FileBackedDB


@pytest.fixture
def store(tmp_path):
    return FileBackedDB(tmp_path, table_files={"products": "products.csv"})


def test_crud_roundtrip_as_strings(store):
    row = store.create_record("products", {"title": "Bowl", "price": 12.5, "stock": 3})
    assert row["id"]
    got = store.get_record("products", "id", row["id"])
    assert got == {"title": "Bowl", "price": "12.5", "stock": "3", "id": row["id"]}

    updated = store.update_record("products", "id", row["id"], {"stock": 1, "color": "red"})
    assert updated["stock"] == "1"
    assert updated["color"] == "red"
    assert store.update_record("products", "id", "nope", {"stock": 1}) is None

    assert store.delete_record("products", "id", row["id"]) is True
    assert store.list_records("products") == []
    assert store.delete_record("products", "id", row["id"]) is False


def test_missing_table_reads_empty(store):
    assert store.list_records("nothing") == []
    assert store.get_record("nothing", "id", "x") is None


def test_transaction_commits_all_tables_together(store):
    p = store.create_record("products", {"title": "A", "stock": 5})
    with store.transaction("products", "orders") as tx:
        tx.decrement("products", "stock", {p["id"]: 2})
        tx.create_many("orders", [{"product_id": p["id"]}, {"product_id": p["id"]}])
    assert store.get_record("products", "id", p["id"])["stock"] == "3"
    assert len(store.list_records("orders")) == 2


def test_transaction_discards_changes_on_error(store):
    p = store.create_record("products", {"title": "A", "stock": 5})
    with pytest.raises(RuntimeError):
        with store.transaction("products", "orders") as tx:
            tx.decrement("products", "stock", {p["id"]: 2})
            tx.create_record("orders", {"product_id": p["id"]})
            raise RuntimeError("boom")
    assert store.get_record("products", "id", p["id"])["stock"] == "5"
    assert store.list_records("orders") == []


def test_transaction_only_sees_declared_tables(store):
    with pytest.raises(KeyError):
        with store.transaction("products") as tx:
            tx.create_record("orders", {"x": 1})


def test_decrement_floor_is_all_or_nothing(store):
    a = store.create_record("products", {"title": "A", "stock": 5})
    b = store.create_record("products", {"title": "B", "stock": 1})
    with pytest.raises(ConstraintError) as exc:
        with store.transaction("products") as tx:
            tx.decrement("products", "stock", {a["id"]: 2, b["id"]: 2})
    assert exc.value.keys == [b["id"]]
    assert store.get_record("products", "id", a["id"])["stock"] == "5"

    with store.transaction("products") as tx:
        new = tx.decrement("products", "stock", {a["id"]: 2, b["id"]: 2}, floor=None)
    assert new == {a["id"]: 3, b["id"]: -1}


def test_decrement_unknown_row_raises(store):
    store.create_record("products", {"title": "A", "stock": 5})
    with pytest.raises(KeyError):
        with store.transaction("products") as tx:
            tx.decrement("products", "stock", {"ghost": 1})


def test_table_path_uses_configured_file_names(store, tmp_path):
    assert store.table_path("products") == tmp_path / "products.csv"
    assert store.table_path("orders") == tmp_path / "orders.csv"
