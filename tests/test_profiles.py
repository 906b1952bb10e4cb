"""Tests for named profiles and the profile stores."""

import json

import pytest

from gesture_tuner.errors import (
    CannotDeleteDefault,
    InvalidThresholds,
    ProfileError,
    ProfileNotFound,
)
from gesture_tuner.profiles import GestureProfile, InMemoryProfileStore, JsonProfileStore
from gesture_tuner.thresholds import ThresholdProfile

CUSTOM = ThresholdProfile.defaults().replace(pinch_distance=0.07, gesture_cooldown=1.0)


class TestGestureProfile:
    def test_dict_round_trip(self):
        profile = GestureProfile(name="Desk", thresholds=CUSTOM)
        restored = GestureProfile.from_dict(profile.to_dict())
        assert restored == profile

    def test_dict_keys(self):
        data = GestureProfile(name="Desk").to_dict()
        assert set(data) == {"id", "name", "createdAt", "modifiedAt", "isDefault", "thresholds"}

    def test_parses_trailing_z(self):
        data = GestureProfile(name="Desk").to_dict()
        data["createdAt"] = "2024-03-01T12:00:00Z"
        assert GestureProfile.from_dict(data).created_at.year == 2024

    def test_str_marks_default(self):
        assert "(Default)" in str(GestureProfile.default_profile())
        assert "(Default)" not in str(GestureProfile(name="Desk"))


class TestInMemoryStore:
    def test_starts_with_default_active(self):
        store = InMemoryProfileStore()
        profiles = store.list_profiles()
        assert len(profiles) == 1
        assert profiles[0].is_default
        assert store.active_profile.id == profiles[0].id

    def test_create_and_get(self):
        store = InMemoryProfileStore()
        created = store.create_profile("Desk", CUSTOM)
        assert not created.is_default
        assert store.get_profile(created.id).thresholds == CUSTOM

    def test_create_rejects_invalid(self):
        store = InMemoryProfileStore()
        with pytest.raises(InvalidThresholds):
            store.create_profile("Bad", CUSTOM.replace(pinch_distance=1.0))
        assert len(store.list_profiles()) == 1

    def test_duplicate_names_get_suffix(self):
        store = InMemoryProfileStore()
        store.create_profile("Desk", CUSTOM)
        assert store.create_profile("Desk", CUSTOM).name == "Desk (2)"
        assert store.create_profile("Desk", CUSTOM).name == "Desk (3)"

    def test_list_order(self):
        store = InMemoryProfileStore()
        for name in ("couch", "Bed", "attic"):
            store.create_profile(name, CUSTOM)
        assert [p.name for p in store.list_profiles()] == ["Default", "attic", "Bed", "couch"]

    def test_returned_profiles_are_copies(self):
        store = InMemoryProfileStore()
        created = store.create_profile("Desk", CUSTOM)
        created.name = "Changed"
        assert store.get_profile(created.id).name == "Desk"

    def test_update(self):
        store = InMemoryProfileStore()
        created = store.create_profile("Desk", CUSTOM)
        before = created.modified_at
        created.name = "Office"
        created.is_default = True
        updated = store.update_profile(created)
        assert updated.name == "Office"
        assert not updated.is_default
        assert updated.modified_at >= before

    def test_update_unknown(self):
        store = InMemoryProfileStore()
        with pytest.raises(ProfileNotFound):
            store.update_profile(GestureProfile(name="Ghost"))

    def test_delete(self):
        store = InMemoryProfileStore()
        created = store.create_profile("Desk", CUSTOM)
        store.delete_profile(created.id)
        assert store.get_profile(created.id) is None

    def test_delete_default_refused(self):
        store = InMemoryProfileStore()
        with pytest.raises(CannotDeleteDefault):
            store.delete_profile(store.default_profile.id)

    def test_delete_active_falls_back(self):
        store = InMemoryProfileStore()
        created = store.create_profile("Desk", CUSTOM)
        store.set_active_profile(created.id)
        store.delete_profile(created.id)
        assert store.active_profile.is_default

    def test_set_active_unknown(self):
        store = InMemoryProfileStore()
        with pytest.raises(ProfileNotFound):
            store.set_active_profile("nope")

    def test_find_by_name(self):
        store = InMemoryProfileStore()
        created = store.create_profile("Desk", CUSTOM)
        assert store.find_by_name("Desk").id == created.id
        assert store.find_by_name("desk") is None

    def test_reset_to_defaults(self):
        store = InMemoryProfileStore()
        created = store.create_profile("Desk", CUSTOM)
        reset = store.reset_profile_to_defaults(created.id)
        assert reset.name == "Desk"
        assert reset.thresholds == ThresholdProfile.defaults()

    def test_export_import(self):
        store = InMemoryProfileStore()
        created = store.create_profile("Desk", CUSTOM)
        text = store.export_profile(created.id)
        assert json.loads(text)["name"] == "Desk"

        imported = store.import_profile(text)
        assert imported.id != created.id
        assert imported.name == "Desk (2)"
        assert imported.thresholds == CUSTOM

    def test_import_default_is_not_default(self):
        store = InMemoryProfileStore()
        imported = store.import_profile(store.export_profile(store.default_profile.id))
        assert not imported.is_default
        assert sum(p.is_default for p in store.list_profiles()) == 1

    @pytest.mark.parametrize("text", ["not json", "{}", "[1, 2]"])
    def test_import_bad_data(self, text):
        with pytest.raises(ProfileError):
            InMemoryProfileStore().import_profile(text)


class TestJsonStore:
    def test_creates_file_with_default(self, tmp_path):
        path = tmp_path / "profiles.json"
        JsonProfileStore(path)
        data = json.loads(path.read_text())
        assert data["version"] == 1
        assert len(data["profiles"]) == 1
        assert data["activeProfileId"] == data["profiles"][0]["id"]

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "profiles.json"
        store = JsonProfileStore(path)
        created = store.create_profile("Desk", CUSTOM)
        store.set_active_profile(created.id)

        reopened = JsonProfileStore(path)
        assert reopened.active_profile.id == created.id
        assert reopened.active_profile.thresholds == CUSTOM
        assert len(reopened.list_profiles()) == 2

    def test_creates_parent_dirs(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "profiles.json"
        JsonProfileStore(path)
        assert path.exists()

    def test_no_tmp_file_left(self, tmp_path):
        path = tmp_path / "profiles.json"
        JsonProfileStore(path).create_profile("Desk", CUSTOM)
        assert [p.name for p in tmp_path.iterdir()] == ["profiles.json"]

    def test_corrupt_file_starts_fresh(self, tmp_path):
        path = tmp_path / "profiles.json"
        path.write_text("{ not json")
        store = JsonProfileStore(path)
        assert [p.name for p in store.list_profiles()] == ["Default"]
        assert json.loads(path.read_text())["version"] == 1

    def test_dangling_active_id_repaired(self, tmp_path):
        path = tmp_path / "profiles.json"
        store = JsonProfileStore(path)
        data = json.loads(path.read_text())
        data["activeProfileId"] = "gone"
        path.write_text(json.dumps(data))
        assert JsonProfileStore(path).active_profile.is_default

    def test_failed_persist_rolls_back(self, tmp_path, monkeypatch):
        store = JsonProfileStore(tmp_path / "profiles.json")

        def boom():
            raise OSError("read-only")

        monkeypatch.setattr(store, "_persist", boom)
        with pytest.raises(OSError):
            store.create_profile("Desk", CUSTOM)
        assert store.find_by_name("Desk") is None

    def test_failed_activation_rolls_back(self, tmp_path, monkeypatch):
        store = JsonProfileStore(tmp_path / "profiles.json")
        desk = store.create_profile("Desk", CUSTOM)

        def boom():
            raise OSError("read-only")

        monkeypatch.setattr(store, "_persist", boom)
        with pytest.raises(OSError):
            store.set_active_profile(desk.id)
        assert store.active_profile.is_default
