"""Command-line interface for justdothething.

Runs Yell Mode in the foreground, serves the HTTP API, or exercises
individual components (one-shot classification, capture test).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="justdothething",
        description="Yell Mode: a focus monitor that tells you to get back to work",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/justdothething.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Monitor until interrupted (Ctrl+C)")
    run_parser.add_argument(
        "--no-face", action="store_true",
        help="Disable webcam focus detection for this run",
    )

    subparsers.add_parser("serve", help="Start the HTTP API with a monitor controller")

    classify_parser = subparsers.add_parser(
        "classify", help="Classify a screenshot as work or non-work and print the decision trail",
    )
    classify_parser.add_argument("image", type=Path, help="Image file to classify")

    subparsers.add_parser("capture-test", help="Save one screen frame and one webcam frame")

    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Component wiring
# ---------------------------------------------------------------------------


def build_content_classifier(settings):
    from justdothething.classify.content import ContentClassifier
    from justdothething.perception.scene import OpenCVSceneClassifier

    p = settings.perception
    scene = OpenCVSceneClassifier(
        model_path=p.scene_model_path,
        labels_path=p.scene_labels_path,
        input_size=p.scene_input_size,
        top_k=p.top_k,
    )
    return ContentClassifier(scene, tuning=settings.content)


def build_speech_output(settings):
    if settings.speech.backend == "notification":
        from justdothething.interrupt.notification import NotificationOutput

        return NotificationOutput(
            title=settings.speech.notification_title,
            timeout=settings.speech.notification_timeout,
        )
    from justdothething.interrupt.command import CommandSpeechOutput

    return CommandSpeechOutput(command=settings.speech.command)


def build_controller(settings, visibility=None):
    """Wire every component of a MonitorController from settings."""
    from justdothething.capture.screen import ScreenCapture
    from justdothething.capture.webcam import WebcamCapture
    from justdothething.classify.focus import FocusClassifier
    from justdothething.config.settings import SettingsStore
    from justdothething.interrupt.dispatcher import InterruptionDispatcher
    from justdothething.monitor.controller import MonitorController
    from justdothething.perception.face import MediaPipeFaceDetector

    cap = settings.capture
    resolution = None
    if cap.webcam_resolution_width and cap.webcam_resolution_height:
        resolution = (cap.webcam_resolution_width, cap.webcam_resolution_height)

    detector = MediaPipeFaceDetector(
        min_detection_confidence=settings.perception.face_min_detection_confidence,
        min_tracking_confidence=settings.perception.face_min_tracking_confidence,
    )
    return MonitorController(
        screen=ScreenCapture(monitor_index=cap.screen_monitor_index),
        webcam=WebcamCapture(device_index=cap.webcam_device_index, resolution=resolution),
        content=build_content_classifier(settings),
        focus=FocusClassifier(detector, tuning=settings.focus),
        dispatcher=InterruptionDispatcher(build_speech_output(settings)),
        settings=SettingsStore(settings.monitor),
        visibility=visibility,
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _run_monitor(settings, args) -> None:
    """Activate monitoring and keep it running until cancelled."""
    from justdothething.monitor.controller import ActivationError

    if args.no_face:
        settings.monitor = settings.monitor.model_copy(update={"use_face_detection": False})

    controller = build_controller(settings)
    try:
        await controller.activate()
    except ActivationError as e:
        print(f"Could not start monitoring ({e.reason}): {e}", file=sys.stderr)
        return

    for warning in controller.snapshot().warnings:
        print(f"Warning: {warning}", file=sys.stderr)
    print("Monitoring. Press Ctrl+C to stop.")
    try:
        await asyncio.Event().wait()
    finally:
        state = controller.snapshot()
        await controller.deactivate()
        print(
            f"\nCycles: {state.cycles_completed} completed, {state.cycles_skipped} skipped; "
            f"interruptions: {state.interruptions}"
        )


async def _classify_image(settings, image_path: Path) -> None:
    """Classify one image and print the result with its decision trail."""
    from justdothething.utils.imaging import load_image

    image = load_image(image_path)
    classifier = build_content_classifier(settings)
    await classifier.warm_up()
    result = await classifier.classify(image)

    print(f"Work: {result.is_work} (confidence {result.confidence:.3f})")
    print(f"Scores: work={result.work_score:.3f} non-work={result.non_work_score:.3f}")
    if result.error:
        print(f"Error: {result.error}")
    if result.detected_work_items:
        print("Work items: " + ", ".join(result.detected_work_items))
    if result.detected_non_work_items:
        print("Non-work items: " + ", ".join(result.detected_non_work_items))
    if result.predictions:
        print("\nTop predictions:")
        for p in result.predictions[:10]:
            print(f"  {p.probability:.3f}  {p.label}")
    if result.decisions:
        print("\nDecision trail:")
        for line in result.decisions:
            print(f"  {line}")


async def _capture_test(settings) -> None:
    """Capture one screen frame and one webcam frame and save them."""
    import cv2

    from justdothething.capture.base import CaptureError
    from justdothething.capture.screen import ScreenCapture
    from justdothething.capture.webcam import WebcamCapture

    cap = settings.capture
    sources = [
        ("screen_test.png", ScreenCapture(monitor_index=cap.screen_monitor_index)),
        ("webcam_test.png", WebcamCapture(device_index=cap.webcam_device_index)),
    ]
    for outfile, source in sources:
        try:
            async with source:
                frame = await source.capture_frame()
        except CaptureError as e:
            print(f"{source.source_name}: {e}", file=sys.stderr)
            continue
        cv2.imwrite(outfile, frame.image)
        print(f"Saved {source.source_name} frame to {outfile} ({frame.width}x{frame.height})")


def _serve(settings) -> None:
    from justdothething.monitor.signals import VisibilitySignal
    from justdothething.server.app import create_app, serve
    from justdothething.server.auth import SupabaseIdentityProvider
    from justdothething.server.users import InMemoryUserStore

    srv = settings.server
    if not srv.supabase_url:
        print("server.supabase_url (or SUPABASE_URL) is required to serve the API", file=sys.stderr)
        sys.exit(1)

    identity = SupabaseIdentityProvider(
        url=srv.supabase_url,
        anon_key=srv.supabase_anon_key.get_secret_value(),
        timeout=srv.request_timeout,
    )
    app = create_app(
        controller=build_controller(settings, visibility=VisibilitySignal()),
        identity=identity,
        users=InMemoryUserStore(),
        cache_ttl=srv.user_cache_ttl,
    )
    serve(app, host=srv.host, port=srv.port)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the justdothething CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from justdothething.config.settings import load_settings
    from justdothething.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    if args.command == "run":
        logger.info("Starting Yell Mode")
        try:
            asyncio.run(_run_monitor(settings, args))
        except KeyboardInterrupt:
            pass

    elif args.command == "serve":
        logger.info("Starting API server")
        _serve(settings)

    elif args.command == "classify":
        logger.info("Classifying %s", args.image)
        asyncio.run(_classify_image(settings, args.image))

    elif args.command == "capture-test":
        logger.info("Running capture test")
        asyncio.run(_capture_test(settings))


if __name__ == "__main__":
    main()
