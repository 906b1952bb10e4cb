"""gesture-tuner CLI: replay, calibrate, record, live recognition and profiles.

Usage:
    gesture-tuner replay        Run a recording through the recognizer
    gesture-tuner calibrate     Derive a threshold profile from a labelled recording
    gesture-tuner record        Record landmark frames from the camera
    gesture-tuner live          Live recognition from the camera
    gesture-tuner profiles      List, show, activate, delete, import, export profiles
"""

from __future__ import annotations

import time
from collections import defaultdict
from pathlib import Path
from typing import Optional

import typer

from gesture_tuner.calibration import SessionSummary
from gesture_tuner.config import EngineConfig, load_config
from gesture_tuner.coordinator import CalibrationCoordinator, CalibrationPhase
from gesture_tuner.engine import CalibrationEngine
from gesture_tuner.errors import ConfigError, GestureTunerError, ProfileNotFound
from gesture_tuner.gestures import GestureEvent, GestureKind
from gesture_tuner.logging_setup import setup_logging
from gesture_tuner.observers import GestureObserver, ObserverHub
from gesture_tuner.pipeline import GesturePipeline
from gesture_tuner.profiles import GestureProfile, JsonProfileStore
from gesture_tuner.recorder import GesturePlayer, GestureRecorder, RecordedFrame
from gesture_tuner.thresholds import ThresholdProfile

app = typer.Typer(
    name="gesture-tuner",
    help="🤚 Hand gesture recognition with per-user threshold calibration.",
    add_completion=False,
)
profiles_app = typer.Typer(help="Manage threshold profiles.", add_completion=False)
app.add_typer(profiles_app, name="profiles")


@app.callback()
def _configure(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override the log level"),
    profiles_file: Optional[str] = typer.Option(None, "--profiles", help="Profile store JSON file"),
):
    try:
        cfg = load_config(config)
    except ConfigError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    if profiles_file:
        cfg.profiles_path = profiles_file
    setup_logging(log_level or cfg.logging.level, cfg.logging.file)
    ctx.obj = cfg


def _store(ctx: typer.Context) -> JsonProfileStore:
    cfg: EngineConfig = ctx.obj
    return JsonProfileStore(cfg.profiles_file)


def _resolve(store: JsonProfileStore, ref: str) -> GestureProfile:
    """Find a profile by id, then by exact name."""
    profile = store.get_profile(ref) or store.find_by_name(ref)
    if profile is None:
        raise ProfileNotFound(ref)
    return profile


def _load_recording(recording: str) -> GesturePlayer:
    path = Path(recording)
    if not path.exists():
        typer.echo(f"❌ Recording not found: {recording}", err=True)
        raise typer.Exit(1)
    try:
        return GesturePlayer.load(path)
    except (ValueError, KeyError) as e:
        typer.echo(f"❌ Could not read recording {recording}: {e}", err=True)
        raise typer.Exit(1)


class _EchoObserver(GestureObserver):
    name = "echo"

    def __init__(self, start: float = 0.0):
        super().__init__()
        self.start = start
        self.count = 0

    def on_gesture(self, event: GestureEvent):
        self.count += 1
        typer.echo(
            f"   🤚 {event.gesture.display_name:12s} "
            f"t={event.timestamp - self.start:6.2f}s  → {event.gesture.description}"
        )


@app.command()
def replay(
    ctx: typer.Context,
    recording: str = typer.Argument(..., help="Path to recording file"),
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="Profile id or name (default: active)"),
    realtime: bool = typer.Option(False, help="Play at original timing"),
    speed: float = typer.Option(1.0, help="Playback speed multiplier"),
):
    """Replay a recording through the recognizer and print confirmed gestures."""
    player = _load_recording(recording)

    try:
        store = _store(ctx)
        selected = _resolve(store, profile) if profile else store.active_profile
        selected.thresholds.validate()
    except GestureTunerError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    typer.echo(
        f"▶️  Replaying {Path(recording).name} ({player.frame_count} frames, "
        f"{player.duration:.1f}s) with profile '{selected.name}'"
    )

    hub = ObserverHub()
    echo = _EchoObserver()
    hub.register(echo)
    pipeline = GesturePipeline(selected.thresholds, observers=hub)

    frames = player.play_realtime(speed=speed) if realtime else player.play()
    for recorded in frames:
        pipeline.process(recorded.frame, recorded.timestamp)

    typer.echo(f"\n✅ Replay complete. {echo.count} gestures detected.")


@app.command()
def calibrate(
    ctx: typer.Context,
    recording: str = typer.Argument(..., help="Recording with gesture-labelled frames"),
    name: str = typer.Option("My Profile", "--name", "-n", help="Profile name"),
    save: bool = typer.Option(False, "--save", help="Save the profile and make it active"),
):
    """Derive a threshold profile from a labelled recording."""
    cfg: EngineConfig = ctx.obj
    player = _load_recording(recording)

    by_label: dict[GestureKind, list[RecordedFrame]] = defaultdict(list)
    for recorded in player.play():
        if recorded.label is not None:
            by_label[recorded.label].append(recorded)

    if not by_label:
        typer.echo("❌ No labelled frames found in recording.", err=True)
        raise typer.Exit(1)

    try:
        store = _store(ctx) if save else None
    except GestureTunerError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    pipeline = GesturePipeline(cfg.thresholds)
    coordinator = CalibrationCoordinator(
        store=store,
        engine=CalibrationEngine(min_samples=cfg.calibration.minimum_samples),
        pipeline=pipeline,
        samples_per_gesture=cfg.calibration.samples_per_gesture,
        minimum_confidence=cfg.calibration.minimum_confidence,
        transition_delay=0,
        advance_delay=0,
    )
    pipeline.calibration_sink = coordinator.add_sample

    coordinator.start(name)
    coordinator.begin_calibration()
    while coordinator.phase is CalibrationPhase.CALIBRATING:
        gesture = coordinator.current_gesture
        for recorded in by_label.get(gesture, []):
            if coordinator.current_gesture is not gesture:
                break
            pipeline.process(recorded.frame, recorded.timestamp)
        if coordinator.current_gesture is gesture:
            coordinator.skip_current_gesture()

    result = coordinator.result
    if coordinator.phase is not CalibrationPhase.REVIEW or result is None:
        typer.echo(f"❌ Calibration failed: {coordinator.error}", err=True)
        raise typer.Exit(1)

    typer.echo("📊 Samples per gesture:")
    for gesture in coordinator.sequence:
        summary: SessionSummary = coordinator.session(gesture).summary()
        typer.echo(
            f"   {gesture.display_name:12s} {summary.sample_count:3d} samples  "
            f"avg confidence {summary.average_confidence:.2f}"
        )

    for warning in result.insufficient:
        typer.echo(f"⚠️  {warning} (using defaults)")

    changed = result.profile.diff(ThresholdProfile.defaults())
    typer.echo(f"\n🎛  Computed thresholds ({len(changed)} changed from defaults):")
    for field_name, (new, old) in changed.items():
        typer.echo(f"   {field_name:34s} {old:.4g} → {new:.4g}")

    if not save:
        coordinator.finish()
        typer.echo("\nRun again with --save to store this profile.")
        return

    try:
        saved = coordinator.save_profile()
    except GestureTunerError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"\n💾 Saved profile '{saved.name}' ({saved.id}) and set it active")


@app.command()
def record(
    ctx: typer.Context,
    output: str = typer.Option("recording.json", "--output", "-o", help="Output file path"),
    gesture: Optional[str] = typer.Option(None, "--gesture", "-g", help="Label every frame with this gesture"),
    duration: float = typer.Option(0, help="Recording duration in seconds (0 = until Ctrl+C)"),
    camera: Optional[int] = typer.Option(None, help="Camera device index"),
):
    """Record hand landmark frames from the camera."""
    cfg: EngineConfig = ctx.obj

    label = None
    if gesture:
        try:
            label = GestureKind.parse(gesture)
        except ValueError:
            typer.echo(f"❌ Unknown gesture: {gesture}", err=True)
            raise typer.Exit(1)

    import cv2
    from gesture_tuner.detector import HandDetector

    index = cfg.capture.camera_index if camera is None else camera
    cap = cv2.VideoCapture(index)
    if not cap.isOpened():
        typer.echo(f"❌ Could not open camera {index}", err=True)
        raise typer.Exit(1)

    detector = HandDetector(
        min_detection_confidence=cfg.capture.min_detection_confidence,
        min_tracking_confidence=cfg.capture.min_tracking_confidence,
    )
    recorder = GestureRecorder()

    typer.echo(f"🎥 Recording from camera {index}...")
    if label:
        typer.echo(f"   Label: {label.display_name}")
    typer.echo("   Press Ctrl+C to stop")
    recorder.start(label=label)

    start = time.monotonic()
    hands = 0

    try:
        while True:
            ret, frame = cap.read()
            if not ret:
                continue

            frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            landmarks = detector.detect(frame_rgb)
            if landmarks is not None:
                hands += 1
            recorder.add_frame(landmarks)

            if recorder.frame_count % 30 == 0:
                elapsed = time.monotonic() - start
                typer.echo(
                    f"\r   Frames: {recorder.frame_count} | Duration: {elapsed:.1f}s | "
                    f"With hand: {hands}",
                    nl=False,
                )

            if duration > 0 and (time.monotonic() - start) >= duration:
                break

    except KeyboardInterrupt:
        pass
    finally:
        recorder.stop()
        cap.release()
        detector.close()

    typer.echo(f"\n\n📼 Recorded {recorder.frame_count} frames ({recorder.duration:.1f}s)")
    recorder.save(output)
    typer.echo(f"💾 Saved to: {output}")


@app.command()
def live(
    ctx: typer.Context,
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="Profile id or name (default: active)"),
    camera: Optional[int] = typer.Option(None, help="Camera device index"),
):
    """Recognize gestures live from the camera."""
    from gesture_tuner.worker import FrameWorker

    cfg: EngineConfig = ctx.obj
    try:
        store = _store(ctx)
        selected = _resolve(store, profile) if profile else store.active_profile
        selected.thresholds.validate()
    except GestureTunerError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    import cv2
    from gesture_tuner.detector import HandDetector

    index = cfg.capture.camera_index if camera is None else camera
    cap = cv2.VideoCapture(index)
    if not cap.isOpened():
        typer.echo(f"❌ Could not open camera {index}", err=True)
        raise typer.Exit(1)

    detector = HandDetector(
        min_detection_confidence=cfg.capture.min_detection_confidence,
        min_tracking_confidence=cfg.capture.min_tracking_confidence,
    )
    hub = ObserverHub()
    echo = _EchoObserver(start=time.monotonic())
    hub.register(echo)
    worker = FrameWorker(GesturePipeline(selected.thresholds, observers=hub))

    typer.echo(f"🎥 Live recognition on camera {index} with profile '{selected.name}'")
    typer.echo("   Press Ctrl+C to stop")

    worker.start()
    try:
        while True:
            ret, frame = cap.read()
            if not ret:
                continue
            frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            worker.submit_frame(detector.detect(frame_rgb))
    except KeyboardInterrupt:
        pass
    finally:
        worker.stop()
        cap.release()
        detector.close()

    typer.echo(
        f"\n✅ Stopped. {echo.count} gestures, {worker.processed_frames} frames processed, "
        f"{worker.dropped_frames} dropped."
    )


# --- Profiles ---

@profiles_app.command("list")
def profiles_list(ctx: typer.Context):
    """List all profiles (default first)."""
    store = _store(ctx)
    active_id = store.active_profile.id
    for p in store.list_profiles():
        marker = "*" if p.id == active_id else " "
        typer.echo(f" {marker} {p.id}  {p}")


@profiles_app.command("show")
def profiles_show(
    ctx: typer.Context,
    ref: Optional[str] = typer.Argument(None, help="Profile id or name (default: active)"),
):
    """Show a profile's thresholds."""
    store = _store(ctx)
    try:
        p = _resolve(store, ref) if ref else store.active_profile
    except GestureTunerError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"{p}  [{p.id}]")
    changed = p.thresholds.diff(ThresholdProfile.defaults())
    for field_name, value in vars(p.thresholds).items():
        marker = f"  (default {changed[field_name][1]})" if field_name in changed else ""
        typer.echo(f"   {field_name:34s} {value}{marker}")


@profiles_app.command("activate")
def profiles_activate(ctx: typer.Context, ref: str = typer.Argument(..., help="Profile id or name")):
    """Make a profile the active one."""
    store = _store(ctx)
    try:
        p = _resolve(store, ref)
        store.set_active_profile(p.id)
    except GestureTunerError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)
    typer.echo(f"✅ Active profile: {p.name}")


@profiles_app.command("delete")
def profiles_delete(ctx: typer.Context, ref: str = typer.Argument(..., help="Profile id or name")):
    """Delete a profile. The default profile cannot be deleted."""
    store = _store(ctx)
    try:
        p = _resolve(store, ref)
        store.delete_profile(p.id)
    except GestureTunerError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)
    typer.echo(f"🗑  Deleted profile: {p.name}")


@profiles_app.command("reset")
def profiles_reset(ctx: typer.Context, ref: str = typer.Argument(..., help="Profile id or name")):
    """Restore a profile's thresholds to the defaults."""
    store = _store(ctx)
    try:
        p = store.reset_profile_to_defaults(_resolve(store, ref).id)
    except GestureTunerError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)
    typer.echo(f"↩️  Reset thresholds of {p.name} to defaults")


@profiles_app.command("export")
def profiles_export(
    ctx: typer.Context,
    ref: str = typer.Argument(..., help="Profile id or name"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="File to write (default: stdout)"),
):
    """Export a profile as JSON."""
    store = _store(ctx)
    try:
        text = store.export_profile(_resolve(store, ref).id)
    except GestureTunerError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    if output:
        Path(output).write_text(text)
        typer.echo(f"💾 Exported to {output}")
    else:
        typer.echo(text)


@profiles_app.command("import")
def profiles_import(ctx: typer.Context, path: str = typer.Argument(..., help="Exported profile JSON")):
    """Import a profile from an exported JSON file."""
    store = _store(ctx)
    source = Path(path)
    if not source.exists():
        typer.echo(f"❌ File not found: {path}", err=True)
        raise typer.Exit(1)
    try:
        p = store.import_profile(source.read_text())
    except GestureTunerError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)
    typer.echo(f"📥 Imported profile: {p.name} ({p.id})")


def main():
    app()


if __name__ == "__main__":
    main()
