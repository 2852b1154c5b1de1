"""Demonstration script for frame-sampled playback.

Loads timing information exported by animaker, binds a logging action to
every animation label, and plays it back at the requested frame rate.
Run with a local export, e.g.:

    python scripts/timing_preview_demo.py timing.json s 10
"""

import sys

from anim_timing import TimingManager, load_timing_file
from anim_timing.config import setup_logging


def main(timing_path: str, time_unit: str = "ms", fps: float = 10):
    logger = setup_logging()
    table = load_timing_file(timing_path, time_unit)

    def draw(entry):
        logger.info(f"frame: {entry.label} (start {entry.start}, durn {entry.durn} {time_unit})")

    tm = TimingManager(table)
    tm.register({label: draw for label in {entry.label for entry in table}})
    try:
        tm.frame_apply(fps=fps)
        tm.wait_for_completion()
        print(tm.get_stats())
    except KeyboardInterrupt:
        print(f"cancelled {tm.cancel()} pending frames")
    finally:
        tm.cleanup()


if __name__ == "__main__":
    if len(sys.argv) < 2:
        raise SystemExit("usage: timing_preview_demo.py TIMING_JSON [UNIT] [FPS]")
    main(sys.argv[1],
         sys.argv[2] if len(sys.argv) > 2 else "ms",
         float(sys.argv[3]) if len(sys.argv) > 3 else 10)
