"""
Tests for the image bucket and the compensating saga helper.
"""
import pytest
from prayerhouse.services.saga import Saga
from prayerhouse.services.storage_service import (
    StorageBucket, StorageError, mission_image_path, daily_image_path
)


def test_object_paths_are_scoped_to_mission():
    assert mission_image_path("m1").startswith("missions/m1/")
    assert mission_image_path("m1").endswith(".webp")
    assert daily_image_path("m1").startswith("missions/m1/daily/")
    assert mission_image_path("m1") != mission_image_path("m1")


def test_upload_and_public_url(storage):
    path = storage.upload("missions/m1/a.webp", b"image-bytes")
    assert storage.exists(path)
    assert storage.get_public_url(path) == "/static/mission-images/missions/m1/a.webp"


def test_upload_refuses_overwrite_without_upsert(storage):
    storage.upload("missions/m1/a.webp", b"one")
    with pytest.raises(StorageError):
        storage.upload("missions/m1/a.webp", b"two")
    storage.upload("missions/m1/a.webp", b"two", upsert=True)
    assert (storage.root / "missions/m1/a.webp").read_bytes() == b"two"


def test_paths_cannot_escape_bucket(storage):
    with pytest.raises(StorageError):
        storage.upload("../outside.webp", b"x")


def test_remove_skips_missing_objects(storage):
    storage.upload("missions/m1/a.webp", b"x")
    removed = storage.remove(["missions/m1/a.webp", "missions/m1/missing.webp"])
    assert removed == ["missions/m1/a.webp"]
    assert not storage.exists("missions/m1/a.webp")


def test_public_url_with_absolute_base(tmp_path):
    bucket = StorageBucket(name="mission-images", root=str(tmp_path), public_url="https://cdn.example.com/")
    assert bucket.get_public_url("x.webp") == "https://cdn.example.com/mission-images/x.webp"


def test_saga_compensates_in_reverse_order():
    undone = []
    with pytest.raises(RuntimeError):
        with Saga("test") as saga:
            saga.step(lambda: "a", lambda result: undone.append(result))
            saga.step(lambda: "b", lambda result: undone.append(result))
            raise RuntimeError("boom")
    assert undone == ["b", "a"]


def test_saga_failed_step_is_not_compensated():
    undone = []

    def failing():
        raise ValueError("upload failed")

    with pytest.raises(ValueError):
        with Saga("test") as saga:
            saga.step(lambda: 1, lambda result: undone.append(result))
            saga.step(failing, lambda result: undone.append("never"))
    assert undone == [1]


def test_saga_keeps_compensating_after_compensation_error():
    undone = []

    def broken(_):
        raise OSError("disk")

    with pytest.raises(RuntimeError):
        with Saga("test") as saga:
            saga.step(lambda: "first", lambda result: undone.append(result))
            saga.step(lambda: "second", broken)
            raise RuntimeError("boom")
    assert undone == ["first"]


def test_saga_success_discards_compensations():
    undone = []
    with Saga("test") as saga:
        saga.step(lambda: "a", lambda result: undone.append(result))
    saga.compensate()
    assert undone == []
