from cart import Cart
from storage import JsonFileStorage, MemoryStorage

from conftest import make_item


def test_memory_storage_copies_documents():
    storage = MemoryStorage()
    doc = {"items": [1]}
    storage.set("k", doc)
    doc["items"].append(2)

    assert storage.get("k") == {"items": [1]}
    storage.clear("k")
    assert storage.get("k") is None


def test_json_file_storage(tmp_path):
    storage = JsonFileStorage(tmp_path / "local")
    storage.set("event-discount-store", {"is_active": True})

    assert JsonFileStorage(tmp_path / "local").get("event-discount-store") == {"is_active": True}

    storage.clear("event-discount-store")
    assert storage.get("event-discount-store") is None


def test_json_file_storage_corrupt_document(tmp_path):
    storage = JsonFileStorage(tmp_path)
    (tmp_path / "cart.json").write_text("{not json", encoding="utf-8")

    assert storage.get("cart") is None


def test_cart_survives_restart_on_disk(tmp_path):
    Cart(storage=JsonFileStorage(tmp_path)).add_item(make_item(price=7.5))

    assert Cart(storage=JsonFileStorage(tmp_path)).total == 7.5
