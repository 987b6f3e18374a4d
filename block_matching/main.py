import argparse
import logging
import sys

from .errors import InvalidInput
from .executors import BACKENDS
from .hooks import TimingHook, stage
from .images import GrayscaleImage, save_rgb
from .matcher import MatcherConfig, StereoBlockMatcher
from .strategies import STRATEGIES
from .visualize import show

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="block-matching",
        description="block matching disparity map of a rectified stereo pair",
    )
    parser.add_argument("left", help="path to the left image")
    parser.add_argument("right", help="path to the right image")
    parser.add_argument("-o", "--output", default="result.png", help="output image")
    parser.add_argument("--block-width", default=11, type=int)
    parser.add_argument("--block-height", default=11, type=int)
    parser.add_argument(
        "--max-disparity",
        default=None,
        type=int,
        help="number of candidate offsets, a quarter of the width by default",
    )
    parser.add_argument(
        "--strategy", default="loop-in-unit", choices=sorted(STRATEGIES)
    )
    parser.add_argument("--backend", default="serial", choices=BACKENDS)
    parser.add_argument("--workers", default=None, type=int, help="threads backend")
    parser.add_argument("--device", default=None, help="torch backend device")
    parser.add_argument("--show", action="store_true", help="display the result")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    timing = TimingHook()
    try:
        config = MatcherConfig(
            block_width=args.block_width,
            block_height=args.block_height,
            max_disparity=args.max_disparity,
            strategy=args.strategy,
            backend=args.backend,
            workers=args.workers,
            device=args.device,
        )
        with stage("load images", [timing]):
            left_img = GrayscaleImage.open(args.left)
            right_img = GrayscaleImage.open(args.right)
        logger.info("left image shape: %s", left_img.shape)
        logger.info("right image shape: %s", right_img.shape)

        with StereoBlockMatcher(config, hooks=[timing]) as matcher:
            _, rgb = matcher.compute_visualization(left_img, right_img)

        with stage("save result", [timing]):
            save_rgb(rgb, args.output)
    except InvalidInput as e:
        parser.error(str(e))

    logger.info(
        "wrote %dx%d disparity map to %s", rgb.shape[1], rgb.shape[0], args.output
    )
    logger.info("total %.6f sec", timing.total)

    if args.show:
        show(rgb)
    return 0


if __name__ == "__main__":
    sys.exit(main())
