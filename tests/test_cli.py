"""Tests for the command line interface."""

import json
import logging

import pytest
from typer.testing import CliRunner

from gesture_tuner.cli import app
from gesture_tuner.config import CONFIG_ENV_VAR
from gesture_tuner.gestures import GestureKind
from gesture_tuner.profiles import JsonProfileStore
from gesture_tuner.recorder import GestureRecorder
from gesture_tuner.thresholds import ThresholdProfile

from helpers import POSES, full_hand_swipe, open_palm, pinch_at_distance

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated(monkeypatch):
    """The CLI reconfigures the root logger; put it back afterwards."""
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def profiles(tmp_path):
    return tmp_path / "profiles.json"


def invoke(profiles, *args):
    return runner.invoke(app, ["--profiles", str(profiles), *args])


def labelled_recording(path, per_gesture=10):
    rec = GestureRecorder()
    rec.start()
    t = 0.0
    for gesture in GestureKind:
        for i in range(per_gesture):
            if gesture.is_swipe:
                frame = full_hand_swipe(0.1 + 0.03 * i)
            elif gesture is GestureKind.PINCH:
                frame = pinch_at_distance(0.025 + 0.001 * i)
            else:
                frame = POSES[gesture]()
            rec.add_frame(frame, t, label=gesture)
            t += 0.1
    rec.stop()
    rec.save(path)
    return path


class TestReplay:
    def test_reports_gestures(self, tmp_path, profiles):
        rec = GestureRecorder()
        rec.start()
        for t in (0.0, 0.1, 0.2):
            rec.add_frame(open_palm(), t)
        rec.stop()
        path = tmp_path / "palm.json"
        rec.save(path)

        result = invoke(profiles, "replay", str(path))
        assert result.exit_code == 0, result.output
        assert "Open Palm" in result.output
        assert "1 gestures detected" in result.output

    def test_missing_recording(self, tmp_path, profiles):
        result = invoke(profiles, "replay", str(tmp_path / "nope.json"))
        assert result.exit_code == 1

    def test_unknown_profile(self, tmp_path, profiles):
        path = labelled_recording(tmp_path / "rec.json", per_gesture=1)
        result = invoke(profiles, "replay", str(path), "--profile", "Ghost")
        assert result.exit_code == 1

    def test_hand_edited_profile_rejected(self, tmp_path, profiles):
        JsonProfileStore(profiles).create_profile("Desk", ThresholdProfile.defaults())
        data = json.loads(profiles.read_text())
        for entry in data["profiles"]:
            if entry["name"] == "Desk":
                entry["thresholds"]["pinchDistance"] = 0.9
        profiles.write_text(json.dumps(data))

        path = labelled_recording(tmp_path / "rec.json", per_gesture=1)
        result = invoke(profiles, "replay", str(path), "--profile", "Desk")
        assert result.exit_code == 1
        assert "pinch_distance" in result.output


class TestCalibrate:
    def test_dry_run_does_not_save(self, tmp_path, profiles):
        path = labelled_recording(tmp_path / "rec.json")
        result = invoke(profiles, "calibrate", str(path))
        assert result.exit_code == 0, result.output
        assert "Computed thresholds" in result.output
        assert "--save" in result.output
        assert len(JsonProfileStore(profiles).list_profiles()) == 1

    def test_save(self, tmp_path, profiles):
        path = labelled_recording(tmp_path / "rec.json")
        result = invoke(profiles, "calibrate", str(path), "--name", "Desk", "--save")
        assert result.exit_code == 0, result.output
        assert "Saved profile 'Desk'" in result.output

        store = JsonProfileStore(profiles)
        assert store.active_profile.name == "Desk"
        assert store.active_profile.thresholds.pinch_distance != 0.05

    def test_insufficient_gestures_warned(self, tmp_path, profiles):
        path = labelled_recording(tmp_path / "rec.json", per_gesture=3)
        result = invoke(profiles, "calibrate", str(path))
        assert result.exit_code == 0, result.output
        assert "using defaults" in result.output

    def test_unlabelled_recording(self, tmp_path, profiles):
        rec = GestureRecorder()
        rec.start()
        rec.add_frame(open_palm(), 0.0)
        rec.stop()
        path = tmp_path / "plain.json"
        rec.save(path)
        assert invoke(profiles, "calibrate", str(path)).exit_code == 1


class TestProfiles:
    def test_list_marks_active(self, profiles):
        result = invoke(profiles, "profiles", "list")
        assert result.exit_code == 0
        assert "* " in result.output
        assert "Default (Default)" in result.output

    def test_show(self, profiles):
        result = invoke(profiles, "profiles", "show")
        assert result.exit_code == 0
        assert "pinch_distance" in result.output

    def test_export_import_activate_delete(self, tmp_path, profiles):
        exported = tmp_path / "default.json"
        result = invoke(profiles, "profiles", "export", "Default", "-o", str(exported))
        assert result.exit_code == 0
        assert json.loads(exported.read_text())["isDefault"] is True

        assert invoke(profiles, "profiles", "import", str(exported)).exit_code == 0
        store = JsonProfileStore(profiles)
        copy = store.find_by_name("Default (2)")
        assert copy is not None and not copy.is_default

        assert invoke(profiles, "profiles", "activate", "Default (2)").exit_code == 0
        assert JsonProfileStore(profiles).active_profile.id == copy.id

        assert invoke(profiles, "profiles", "delete", copy.id).exit_code == 0
        assert JsonProfileStore(profiles).active_profile.is_default

    def test_delete_default_refused(self, profiles):
        result = invoke(profiles, "profiles", "delete", "Default")
        assert result.exit_code == 1

    def test_reset(self, tmp_path, profiles):
        path = labelled_recording(tmp_path / "rec.json")
        invoke(profiles, "calibrate", str(path), "--name", "Desk", "--save")
        result = invoke(profiles, "profiles", "reset", "Desk")
        assert result.exit_code == 0
        store = JsonProfileStore(profiles)
        assert store.find_by_name("Desk").thresholds == store.default_profile.thresholds

    def test_unknown_profile(self, profiles):
        assert invoke(profiles, "profiles", "show", "Ghost").exit_code == 1


class TestConfigOption:
    def test_bad_config_exits(self, tmp_path, profiles):
        bad = tmp_path / "bad.yaml"
        bad.write_text("nonsense: {}\n")
        result = runner.invoke(app, ["--config", str(bad), "profiles", "list"])
        assert result.exit_code == 1
