"""Command line entry point: ``pyfairing <scene-file> <xres> <yres> <h>``."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

import numpy as np

from .config import FRAME_INTERVAL_MS, FairingConfig, ViewerConfig
from .errors import FairingError
from .pipeline import load_scene_objects, smooth_all
from .scene import read_scene

logger = logging.getLogger("pyfairing")


class _ArgumentParser(argparse.ArgumentParser):
    """Usage errors exit with status 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _positive(kind):
    def convert(text):
        try:
            value = kind(text)
        except ValueError:
            raise argparse.ArgumentTypeError(f"invalid {kind.__name__} value: {text!r}") from None
        if not value > 0:
            raise argparse.ArgumentTypeError(f"must be positive, got {text!r}")
        return value

    convert.__name__ = kind.__name__
    return convert


def build_parser() -> argparse.ArgumentParser:
    ap = _ArgumentParser(
        prog="pyfairing",
        description="Implicit fairing of the meshes of a scene, shown in an interactive viewer",
    )
    ap.add_argument("scene", help="Scene description file")
    ap.add_argument("xres", type=_positive(int), help="Window width in pixels")
    ap.add_argument("yres", type=_positive(int), help="Window height in pixels")
    ap.add_argument("h", type=_positive(float), help="Time step per smoothing generation")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    ap.add_argument(
        "--interval",
        type=_positive(int),
        default=FRAME_INTERVAL_MS,
        help="Milliseconds between generations once smoothing has started",
    )
    ap.add_argument(
        "--generations",
        type=_positive(int),
        default=None,
        help="Run this many generations without opening a window",
    )
    return ap


def run_generations(objects, h: float, generations: int, *, log: Optional[logging.Logger] = None) -> None:
    """Smooth every object ``generations`` times, logging centroid and extent."""
    _log = log or logger
    for k in range(generations):
        smooth_all(objects, h)
        for name in sorted(objects):
            V = objects[name].halfedge.positions
            _log.info(
                "Generation %d, %s: centroid=%s extent=%s",
                k + 1, name,
                np.array2string(V.mean(axis=0), precision=5),
                np.array2string(V.max(axis=0) - V.min(axis=0), precision=5),
            )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        fairing = FairingConfig(h=args.h)
        scene = read_scene(args.scene)
        objects = load_scene_objects(
            scene,
            eps=fairing.degenerate_eps,
            reuse_pattern=fairing.reuse_pattern,
            verbose=args.verbose,
        )
        if args.generations is not None:
            run_generations(objects, fairing.h, args.generations)
            return 0
    except FairingError as e:
        logger.error("%s", e)
        return 1

    from .viewer import Viewer

    viewer = Viewer(
        scene,
        objects,
        fairing.h,
        ViewerConfig(xres=args.xres, yres=args.yres, frame_interval_ms=args.interval),
    )
    viewer.show()
    return 0


if __name__ == "__main__":
    sys.exit(main())
