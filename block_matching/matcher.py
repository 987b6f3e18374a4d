import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Union

import numpy as np

from .errors import InvalidInput
from .executors import BACKENDS, ParallelExecutor, get_executor
from .hooks import StageHook, stage
from .images import GrayscaleImage
from .strategies import STRATEGIES, get_strategy
from .visualize import DisparityVisualizer

logger = logging.getLogger(__name__)

ImageLike = Union[GrayscaleImage, np.ndarray]


@dataclass(frozen=True)
class MatcherConfig:
    """
    Args:
        block_width (int): block width in pixels
        block_height (int): block height in pixels
        max_disparity (int): number of candidate offsets, a quarter of the
            image width when None
        strategy (str): partition strategy name
        backend (str): executor backend, serial, threads or torch
        workers (int): thread count for the threads backend
        device (str): torch device for the torch backend
    """

    block_width: int = 11
    block_height: int = 11
    max_disparity: Optional[int] = None
    strategy: str = "loop-in-unit"
    backend: str = "serial"
    workers: Optional[int] = None
    device: Optional[str] = None

    def __post_init__(self):
        if self.block_width <= 0 or self.block_height <= 0:
            raise InvalidInput(
                f"block size must be positive, got "
                f"{self.block_width}x{self.block_height}"
            )
        if self.max_disparity is not None and self.max_disparity <= 0:
            raise InvalidInput(
                f"max_disparity must be positive, got {self.max_disparity}"
            )
        if self.strategy not in STRATEGIES:
            raise InvalidInput(
                f"unknown strategy {self.strategy!r}, expected one of "
                f"{sorted(STRATEGIES)}"
            )
        if self.backend not in BACKENDS:
            raise InvalidInput(
                f"unknown backend {self.backend!r}, expected one of {BACKENDS}"
            )

    def resolve_max_disparity(self, width: int) -> int:
        if self.max_disparity is not None:
            return self.max_disparity
        return max(1, width // 4)


def as_image(image: ImageLike) -> GrayscaleImage:
    if isinstance(image, GrayscaleImage):
        return image
    return GrayscaleImage.from_array(image)


class StereoBlockMatcher:
    """
    Block matching disparity between a rectified stereo pair.

    The left image is searched at offsets [0, max_disparity) to the right of
    every right image block, and each block gets the offset with the smallest
    sum of absolute differences.
    """

    def __init__(
        self,
        config: Optional[MatcherConfig] = None,
        hooks: Iterable[StageHook] = (),
        executor: Optional[ParallelExecutor] = None,
    ):
        self.config = config or MatcherConfig()
        self.hooks = tuple(hooks)
        self.strategy = get_strategy(self.config.strategy)
        self._own_executor = executor is None
        self.executor = executor or get_executor(
            self.config.backend, workers=self.config.workers, device=self.config.device
        )

    def compute(self, left_img: ImageLike, right_img: ImageLike) -> np.ndarray:
        """
        Args:
            left_img: left image, GrayscaleImage or (H, W) array
            right_img: right image of the same size

        Returns:
            disparity grid of shape (H // block_height, W // block_width)
        """
        left = as_image(left_img)
        right = as_image(right_img)
        max_disparity = self.config.resolve_max_disparity(left.width)
        logger.debug(
            "matching %dx%d pair, %s on %s, max disparity %d",
            left.width,
            left.height,
            self.strategy.name,
            self.executor.name,
            max_disparity,
        )
        return self.strategy.run(
            left,
            right,
            max_disparity,
            self.config.block_width,
            self.config.block_height,
            self.executor,
            self.hooks,
        )

    def visualize(self, disparity: np.ndarray, max_disparity: int) -> np.ndarray:
        with stage("visualization", self.hooks):
            return DisparityVisualizer(max_disparity).render(disparity)

    def compute_visualization(
        self, left_img: ImageLike, right_img: ImageLike
    ) -> tuple[np.ndarray, np.ndarray]:
        """
        Returns:
            disparity grid and its false-color rendering
        """
        left = as_image(left_img)
        disparity = self.compute(left, right_img)
        rgb = self.visualize(disparity, self.config.resolve_max_disparity(left.width))
        return disparity, rgb

    def close(self):
        if self._own_executor:
            self.executor.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


def compute_disparity(
    left_img: ImageLike, right_img: ImageLike, **config
) -> np.ndarray:
    """one-shot helper, keyword arguments are MatcherConfig fields"""
    with StereoBlockMatcher(MatcherConfig(**config)) as matcher:
        return matcher.compute(left_img, right_img)
