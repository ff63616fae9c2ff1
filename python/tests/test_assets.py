"""Tests for the asset lifecycle service.

Tests cover:
- Size derivation with the per-representation floor
- Validation before any store or storage call
- Sequential batches that stop at the first failure
- Delete ordering (metadata first, then one bulk delete per container)
- Original path attachment and filename updates
"""

from uuid import uuid4

import pytest

from photoshare.db.store import PersistenceError
from photoshare.errors import (
    ApiErrorCode,
    NotFoundError,
    NotFoundOrEmptyError,
    PersistenceFaultError,
    StorageFaultError,
    ValidationError,
)
from photoshare.services import assets as assets_service
from photoshare.services.assets import MIN_BILLABLE_BYTES, compute_total_size
from photoshare.storage.locators import low_locator_for
from tests.helpers import (
    BUCKET,
    STORAGE_HOST,
    SpyStore,
    asset_request,
    make_viewer,
    original_locator,
    seed_objects,
)


def stored_assets(store, user):
    try:
        return {asset.id: asset for asset in assets_service.list_assets(store, user.viewer)}
    except NotFoundOrEmptyError:
        return {}


class TestComputeTotalSize:
    @pytest.mark.parametrize(
        "original_bytes, low_bytes, expected",
        [
            (500000, 20000, 500000 + MIN_BILLABLE_BYTES),
            (0, 0, 2 * MIN_BILLABLE_BYTES),
            (MIN_BILLABLE_BYTES, MIN_BILLABLE_BYTES + 1, 2 * MIN_BILLABLE_BYTES + 1),
            (10_000_000, 300_000, 10_300_000),
        ],
    )
    def test_floor_applies_to_each_representation(self, original_bytes, low_bytes, expected):
        assert compute_total_size(original_bytes, low_bytes) == expected

    def test_floor_is_128_kib(self):
        assert MIN_BILLABLE_BYTES == 131072


class TestCreateAsset:
    def test_reported_size_uses_probed_lengths(self, store, storage, alice):
        request = asset_request()
        seed_objects(storage, f"user/{request.asset_id}", 500000, 20000)

        total = assets_service.create_asset(store, storage, alice.viewer, request)

        assert total == 500000 + MIN_BILLABLE_BYTES
        assert storage.probe_calls == [request.remote_path_original]
        assert stored_assets(store, alice)[request.asset_id].total_size == total

    def test_without_original_no_probe_and_no_size(self, store, storage, alice):
        request = asset_request(with_original=False)

        total = assets_service.create_asset(store, storage, alice.viewer, request)

        assert total is None
        assert storage.probe_calls == []
        stored = stored_assets(store, alice)[request.asset_id]
        assert stored.total_size is None
        assert stored.remote_path_original is None

    def test_empty_type_defaults_to_photo(self, store, storage, alice):
        request = asset_request(with_original=False, type="")

        assets_service.create_asset(store, storage, alice.viewer, request)

        assert stored_assets(store, alice)[request.asset_id].type == "photo"

    def test_given_type_is_kept(self, store, storage, alice):
        request = asset_request(with_original=False, type="video")

        assets_service.create_asset(store, storage, alice.viewer, request)

        assert stored_assets(store, alice)[request.asset_id].type == "video"

    def test_zero_dimensions_rejected_before_any_call(self, store, storage, alice):
        spy = SpyStore(store)
        request = asset_request(pixel_width=0, pixel_height=0)

        with pytest.raises(ValidationError):
            assets_service.create_asset(spy, storage, alice.viewer, request)

        assert spy.calls == []
        assert storage.probe_calls == []

    @pytest.mark.parametrize(
        "overrides",
        [
            {"asset_id": ""},
            {"remote_path": ""},
            {"key": ""},
            {"pixel_width": 0},
            {"pixel_height": 0},
        ],
    )
    def test_invalid_fields_rejected(self, store, storage, alice, overrides):
        spy = SpyStore(store)

        with pytest.raises(ValidationError):
            assets_service.create_asset(spy, storage, alice.viewer, asset_request(**overrides))

        assert spy.calls == []
        assert storage.probe_calls == []

    def test_probe_failure_persists_nothing(self, store, storage, alice):
        request = asset_request()

        with pytest.raises(StorageFaultError):
            assets_service.create_asset(store, storage, alice.viewer, request)

        assert stored_assets(store, alice) == {}

    def test_missing_low_representation_is_a_storage_fault(self, store, storage, alice):
        request = asset_request()
        storage.put_object(BUCKET, f"user/{request.asset_id}_original", 10)

        with pytest.raises(StorageFaultError):
            assets_service.create_asset(store, storage, alice.viewer, request)

    def test_unregistered_owner_is_a_persistence_fault(self, store, storage):
        with pytest.raises(PersistenceFaultError):
            assets_service.create_asset(
                store, storage, make_viewer("nobody"), asset_request(with_original=False)
            )

    def test_duplicate_id_is_a_persistence_fault(self, store, storage, alice):
        request = asset_request(with_original=False)
        assets_service.create_asset(store, storage, alice.viewer, request)

        with pytest.raises(PersistenceFaultError):
            assets_service.create_asset(store, storage, alice.viewer, request)


class TestCreateAssets:
    def test_stops_at_first_failure_and_keeps_earlier_items(self, store, storage, alice):
        valid = asset_request()
        seed_objects(storage, f"user/{valid.asset_id}", 200000, 1000)
        invalid = asset_request(pixel_width=0)
        never_reached = asset_request(with_original=False)

        with pytest.raises(ValidationError):
            assets_service.create_assets(
                store, storage, alice.viewer, [valid, invalid, never_reached]
            )

        assert set(stored_assets(store, alice)) == {valid.asset_id}

    def test_sizes_only_for_items_with_original(self, store, storage, alice):
        with_original = asset_request()
        seed_objects(storage, f"user/{with_original.asset_id}", 1, 1)
        without_original = asset_request(with_original=False)

        sizes = assets_service.create_assets(
            store, storage, alice.viewer, [with_original, without_original]
        )

        assert sizes == {with_original.asset_id: 2 * MIN_BILLABLE_BYTES}


class TestDeleteAssets:
    def test_deletes_metadata_then_objects_per_container(self, store, storage, alice):
        in_photos = asset_request(base="a/one")
        in_archive = asset_request(
            base="a/two",
            remote_path=f"{STORAGE_HOST}/archive/a/two_low",
            remote_path_original=f"{STORAGE_HOST}/archive/a/two_original",
        )
        seed_objects(storage, "a/one", 10, 10)
        seed_objects(storage, "a/two", 10, 10, container="archive")
        assets_service.create_assets(store, storage, alice.viewer, [in_photos, in_archive])

        locators = assets_service.delete_assets(
            store, storage, alice.viewer, [in_photos.asset_id, in_archive.asset_id]
        )

        assert sorted(locators) == sorted(
            [
                f"{STORAGE_HOST}/photos/a/one_low",
                f"{STORAGE_HOST}/photos/a/one_original",
                f"{STORAGE_HOST}/archive/a/two_low",
                f"{STORAGE_HOST}/archive/a/two_original",
            ]
        )
        assert len(storage.delete_calls) == 2
        by_container = {container: sorted(keys) for container, keys in storage.delete_calls}
        assert by_container == {
            "photos": ["a/one_low", "a/one_original"],
            "archive": ["a/two_low", "a/two_original"],
        }
        assert stored_assets(store, alice) == {}
        assert not storage.has_object(BUCKET, "a/one_original")

    def test_low_locator_derived_the_same_way_as_for_probes(self, store, storage, alice):
        request = asset_request(
            base="u/pic",
            remote_path=f"{STORAGE_HOST}/photos/u/pic_thumbnail",
        )
        seed_objects(storage, "u/pic", 10, 10)
        assets_service.create_asset(store, storage, alice.viewer, request)

        locators = assets_service.delete_assets(
            store, storage, alice.viewer, [request.asset_id]
        )

        assert low_locator_for(original_locator("u/pic")) in locators
        assert original_locator("u/pic") in locators
        assert f"{STORAGE_HOST}/photos/u/pic_thumbnail" in locators

    def test_empty_id_list_rejected(self, store, storage, alice):
        spy = SpyStore(store)

        with pytest.raises(ValidationError):
            assets_service.delete_assets(spy, storage, alice.viewer, [])

        assert spy.calls == []
        assert storage.delete_calls == []

    def test_other_users_assets_are_untouched(self, store, storage, alice, bob):
        bobs = asset_request(with_original=False)
        assets_service.create_asset(store, storage, bob.viewer, bobs)

        locators = assets_service.delete_assets(store, storage, alice.viewer, [bobs.asset_id])

        assert locators == []
        assert storage.delete_calls == []
        assert bobs.asset_id in stored_assets(store, bob)

    def test_metadata_failure_leaves_storage_untouched(self, store, storage, alice, monkeypatch):
        def fail(*args, **kwargs):
            raise PersistenceError("database unavailable")

        monkeypatch.setattr(store, "delete_assets", fail)

        with pytest.raises(PersistenceFaultError):
            assets_service.delete_assets(store, storage, alice.viewer, [str(uuid4())])

        assert storage.delete_calls == []

    def test_storage_failure_after_metadata_removal_orphans_objects(
        self, store, storage, alice
    ):
        request = asset_request(base="o/pic")
        seed_objects(storage, "o/pic", 10, 10)
        assets_service.create_asset(store, storage, alice.viewer, request)
        storage.failing_containers.add(BUCKET)

        with pytest.raises(StorageFaultError):
            assets_service.delete_assets(store, storage, alice.viewer, [request.asset_id])

        assert stored_assets(store, alice) == {}
        assert storage.has_object(BUCKET, "o/pic_original")


class TestPatchAssets:
    def test_creates_then_deletes(self, store, storage, alice):
        old = asset_request(with_original=False)
        assets_service.create_asset(store, storage, alice.viewer, old)
        new = asset_request()
        seed_objects(storage, f"user/{new.asset_id}", 300000, 5)

        sizes = assets_service.patch_assets(
            store, storage, alice.viewer, [new], [old.asset_id]
        )

        assert sizes == {new.asset_id: 300000 + MIN_BILLABLE_BYTES}
        assert set(stored_assets(store, alice)) == {new.asset_id}

    def test_create_failure_skips_deletes(self, store, storage, alice):
        keep = asset_request(with_original=False)
        assets_service.create_asset(store, storage, alice.viewer, keep)

        with pytest.raises(ValidationError):
            assets_service.patch_assets(
                store, storage, alice.viewer, [asset_request(key="")], [keep.asset_id]
            )

        assert keep.asset_id in stored_assets(store, alice)
        assert storage.delete_calls == []


class TestAttachOriginalPath:
    def test_attaches_path_and_size(self, store, storage, alice):
        request = asset_request(with_original=False, base="late/pic")
        assets_service.create_asset(store, storage, alice.viewer, request)
        seed_objects(storage, "late/pic", 250000, 140000)

        total = assets_service.attach_original_path(
            store, storage, alice.viewer, request.asset_id, original_locator("late/pic")
        )

        assert total == 250000 + 140000
        stored = stored_assets(store, alice)[request.asset_id]
        assert stored.remote_path_original == original_locator("late/pic")
        assert stored.total_size == total

    def test_invalid_asset_id(self, store, storage, alice):
        with pytest.raises(ValidationError):
            assets_service.attach_original_path(
                store, storage, alice.viewer, "not-a-uuid", original_locator("x")
            )
        assert storage.probe_calls == []

    def test_empty_path(self, store, storage, alice):
        with pytest.raises(ValidationError):
            assets_service.attach_original_path(store, storage, alice.viewer, str(uuid4()), "")

    def test_unknown_asset(self, store, storage, alice):
        seed_objects(storage, "ghost", 1, 1)

        with pytest.raises(NotFoundError) as exc_info:
            assets_service.attach_original_path(
                store, storage, alice.viewer, str(uuid4()), original_locator("ghost")
            )
        assert exc_info.value.code == ApiErrorCode.E_NOT_FOUND

    def test_probe_failure_leaves_asset_unchanged(self, store, storage, alice):
        request = asset_request(with_original=False)
        assets_service.create_asset(store, storage, alice.viewer, request)

        with pytest.raises(StorageFaultError):
            assets_service.attach_original_path(
                store, storage, alice.viewer, request.asset_id, original_locator("missing")
            )

        assert stored_assets(store, alice)[request.asset_id].remote_path_original is None

    def test_bulk_stops_at_first_failure(self, store, storage, alice):
        first = asset_request(with_original=False, base="b/1")
        second = asset_request(with_original=False, base="b/2")
        assets_service.create_assets(store, storage, alice.viewer, [first, second])
        seed_objects(storage, "b/1", 1, 1)

        with pytest.raises(StorageFaultError):
            assets_service.attach_original_paths(
                store,
                storage,
                alice.viewer,
                {
                    first.asset_id: original_locator("b/1"),
                    second.asset_id: original_locator("b/2"),
                },
            )

        stored = stored_assets(store, alice)
        assert stored[first.asset_id].total_size == 2 * MIN_BILLABLE_BYTES
        assert stored[second.asset_id].total_size is None

    def test_bulk_empty_payload(self, store, storage, alice):
        with pytest.raises(ValidationError):
            assets_service.attach_original_paths(store, storage, alice.viewer, {})

    def test_bulk_accepts_client_ids(self, store, storage, alice):
        request = asset_request(asset_id="client-asset-1", with_original=False, base="p/1")
        assets_service.create_asset(store, storage, alice.viewer, request)
        seed_objects(storage, "p/1", 200000, 1)

        sizes = assets_service.attach_original_paths(
            store, storage, alice.viewer, {"client-asset-1": original_locator("p/1")}
        )

        assert sizes == {"client-asset-1": 200000 + MIN_BILLABLE_BYTES}
        assert stored_assets(store, alice)["client-asset-1"].total_size == sizes["client-asset-1"]


class TestOriginalFilenames:
    def test_same_payload_twice_is_idempotent(self, store, storage, alice):
        request = asset_request(with_original=False)
        assets_service.create_asset(store, storage, alice.viewer, request)
        payload = {request.asset_id: "IMG_0001.HEIC"}

        assets_service.set_original_filenames(store, alice.viewer, payload)
        first = stored_assets(store, alice)[request.asset_id].original_filename
        assets_service.set_original_filenames(store, alice.viewer, payload)
        second = stored_assets(store, alice)[request.asset_id].original_filename

        assert first == second == "IMG_0001.HEIC"

    def test_other_users_assets_ignored(self, store, storage, alice, bob):
        bobs = asset_request(with_original=False, original_filename="bob.jpg")
        assets_service.create_asset(store, storage, bob.viewer, bobs)

        assets_service.set_original_filenames(store, alice.viewer, {bobs.asset_id: "x.jpg"})

        assert stored_assets(store, bob)[bobs.asset_id].original_filename == "bob.jpg"

    def test_empty_payload(self, store, alice):
        with pytest.raises(ValidationError):
            assets_service.set_original_filenames(store, alice.viewer, {})

    def test_single_requires_uuid(self, store, alice):
        with pytest.raises(ValidationError):
            assets_service.set_original_filename(store, alice.viewer, "abc", "x.jpg")


class TestListAssets:
    def test_no_assets_is_no_content(self, store, alice):
        with pytest.raises(NotFoundOrEmptyError):
            assets_service.list_assets(store, alice.viewer)
