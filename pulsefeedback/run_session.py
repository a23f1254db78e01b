"""
Record a live session from the webcam.

Landmarks are extracted at the camera's frame rate; the sampler ticks once per
second from the same loop. Press Ctrl+C (or wait for --duration) to stop; the
session is saved to the session slot and summarized.

    python -m pulsefeedback.run_session --mode activity --duration 120
"""

import argparse
import logging
import time

import cv2

from pulsefeedback.core.config import PulseConfig
from pulsefeedback.core.face_mesh_analyzer import FeatureExtractor
from pulsefeedback.core.landmark_source import FaceLandmarkSource
from pulsefeedback.core.logger import PointLogger
from pulsefeedback.core.pipeline import LatestFeatureCell, SessionSampler
from pulsefeedback.core.report import generate_report
from pulsefeedback.core.screen_capture import ScreenCapturer
from pulsefeedback.core.snapshots import SnapshotTrigger
from pulsefeedback.core.storage import SessionStore
from pulsefeedback.core.types import SessionMode


logger = logging.getLogger("pulsefeedback.run_session")

TASK_DELAY_SEC = 0.8


def main(argv=None):
    parser = argparse.ArgumentParser(description="Record an engagement session from the webcam.")
    parser.add_argument("--mode", choices=[m.value for m in SessionMode], default=SessionMode.ACTIVITY.value)
    parser.add_argument("--duration", type=float, default=None, help="Stop after this many seconds")
    parser.add_argument("--task-seconds", type=float, default=8.0, help="Task length in task mode")
    parser.add_argument("--camera", type=int, default=0, help="Camera index for cv2.VideoCapture")
    parser.add_argument("--monitor", type=int, default=1, help="mss monitor index for screen snapshots")
    parser.add_argument("--no-snapshots", action="store_true", help="Disable confusion snapshots")
    parser.add_argument("--slot", type=str, default=None, help="Session slot path")
    parser.add_argument("--log", type=str, default=None, help="Optional CSV metric log path")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = PulseConfig()
    mode = SessionMode(args.mode)

    capture = cv2.VideoCapture(args.camera)
    if not capture.isOpened():
        raise SystemExit(f"Could not open camera {args.camera}")

    source = FaceLandmarkSource()
    extractor = FeatureExtractor(config)
    cell = LatestFeatureCell()

    trigger = None
    if mode is SessionMode.ACTIVITY and not args.no_snapshots:
        trigger = SnapshotTrigger(ScreenCapturer(monitor_index=args.monitor).render, config)

    sampler = SessionSampler(
        cell,
        config,
        snapshot_trigger=trigger,
        point_logger=PointLogger(args.log) if args.log else None,
    )
    sampler.start(mode)

    try:
        while sampler.running:
            t = sampler.now()
            if args.duration is not None and t >= args.duration:
                break

            if mode is SessionMode.TASK:
                ctx = sampler.context
                if not ctx.task_playing and ctx.task_started_at is None and t >= TASK_DELAY_SEC:
                    sampler.start_task(note="Task started")
                elif ctx.task_playing and t - ctx.task_started_at >= args.task_seconds:
                    sampler.end_task(note="Task ended")

            ok, frame = capture.read()
            landmarks = source.detect(frame) if ok else None
            cell.publish(extractor.extract(landmarks, timestamp=round(t, 2)))

            point = sampler.poll()
            if point is not None:
                logger.debug(
                    "[Session] t=%.1f face=%s gaze=%s emotion=%s",
                    point.timestamp,
                    point.face_present,
                    point.gaze.value,
                    point.emotion.value,
                )
            if not ok:
                time.sleep(0.05)
    except KeyboardInterrupt:
        pass
    finally:
        sampler.stop()
        capture.release()
        source.close()

    payload = sampler.payload(
        notes="Face tracking via MediaPipe face mesh. Heart/breath rate are synthetic placeholders."
    )
    if payload is None or not payload.points:
        print("No points recorded; nothing saved.")
        return

    store = SessionStore(args.slot or config.session_slot_path)
    store.save(payload)
    print(f"Saved {len(payload.points)} point(s), {len(payload.snapshots)} snapshot(s) to {store.path}")

    report = generate_report(payload, config)
    if report is not None:
        scores = report.scores
        print(
            f"Satisfaction {scores.satisfaction}/5, ease {scores.ease}/5, clarity {scores.clarity}/5, "
            f"tone {report.tone.value}, confidence {report.confidence:.2f}"
        )


if __name__ == "__main__":
    main()
