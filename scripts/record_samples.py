#!/usr/bin/env python3
"""Record webcam keypoints to a JSON-lines file for ``posearena replay``."""
from __future__ import annotations

import argparse
import json
from pathlib import Path
import time

from posearena.config import load_settings
from posearena.vision.pose import CameraTracker


def main() -> None:
    p = argparse.ArgumentParser(description=__doc__)
    p.add_argument("--out", required=True, help="Output .jsonl path")
    p.add_argument("--seconds", type=float, default=25.0)
    p.add_argument("--camera", default="0")
    args = p.parse_args()

    settings = load_settings()
    cam = int(args.camera) if str(args.camera).isdigit() else args.camera
    tracker = CameraTracker(camera=cam, tracking=settings.tracking)
    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    frames = 0
    t0 = time.monotonic()
    try:
        with out.open("w", encoding="utf-8") as f:
            while True:
                t = time.monotonic() - t0
                if t > args.seconds:
                    break
                pose = tracker.read()
                rec = {"t": round(t, 3), "keypoints": pose.to_keypoints() if pose is not None else None}
                f.write(json.dumps(rec) + "\n")
                frames += 1
                time.sleep(settings.sampling.interval_sec)
    except KeyboardInterrupt:
        pass
    finally:
        tracker.close()
    print(f"[posearena] Wrote {frames} samples to {out}")


if __name__ == "__main__":
    main()
