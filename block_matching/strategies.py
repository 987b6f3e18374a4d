"""
Two ways of laying the block matching work out on an executor.

`LoopInUnit` gives every pixel one work-item that walks all candidate
offsets itself. `CandidateAsDimension` turns the candidate offset into a
third grid axis, so every (x, y, k) is its own work-item, and leaves the
argmin to a second grid with one work-item per block. Both produce the
same disparity grid.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

import numpy as np

from .engine import (
    aggregate_blocks,
    check_blocks,
    check_pair,
    compute_differences,
    match_blocks_fused,
)
from .errors import InvalidInput
from .executors import ParallelExecutor, SerialExecutor
from .hooks import StageHook, stage
from .images import GrayscaleImage


class PartitionStrategy(ABC):
    name = "abstract"

    def run(
        self,
        left: GrayscaleImage,
        right: GrayscaleImage,
        max_disparity: int,
        block_width: int,
        block_height: int,
        executor: Optional[ParallelExecutor] = None,
        hooks: Iterable[StageHook] = (),
    ) -> np.ndarray:
        """
        compute the disparity grid of a stereo pair
        Args:
            left (GrayscaleImage): left image
            right (GrayscaleImage): right image
            max_disparity (int): candidate offsets are [0, max_disparity)
            block_width (int): block width in pixels
            block_height (int): block height in pixels
            executor (ParallelExecutor): backend, serial when omitted
            hooks: notified around every stage

        Returns:
            int32 array of shape (H // block_height, W // block_width)
        """
        check_pair(left, right, max_disparity)
        check_blocks(left.width, left.height, block_width, block_height)
        executor = executor or SerialExecutor()
        hooks = tuple(hooks)
        return self._run(
            left, right, max_disparity, block_width, block_height, executor, hooks
        )

    def _run(
        self, left, right, max_disparity, block_width, block_height, executor, hooks
    ):
        with stage("differences", hooks):
            diffs = compute_differences(
                left, right, max_disparity, executor, kernel=self.difference_kernel
            )
        with stage("aggregation", hooks):
            disparity = aggregate_blocks(diffs, block_width, block_height, executor)
        return disparity

    @property
    @abstractmethod
    def difference_kernel(self) -> str:
        pass

    def __repr__(self):
        return f"{type(self).__name__}()"


class LoopInUnit(PartitionStrategy):
    """
    one work-item per pixel looping over the candidates; with `fused` the
    work-items are blocks that also reduce, and the volume is never built
    """

    difference_kernel = "get_diffs_loop"

    def __init__(self, fused: bool = False):
        self.fused = fused

    @property
    def name(self):
        return "loop-in-unit-fused" if self.fused else "loop-in-unit"

    def _run(
        self, left, right, max_disparity, block_width, block_height, executor, hooks
    ):
        if not self.fused:
            return super()._run(
                left, right, max_disparity, block_width, block_height, executor, hooks
            )
        with stage("fused", hooks):
            return match_blocks_fused(
                left, right, max_disparity, block_width, block_height, executor
            )

    def __repr__(self):
        return f"LoopInUnit(fused={self.fused})"


class CandidateAsDimension(PartitionStrategy):
    """one work-item per (x, y, k), then one reduction work-item per block"""

    name = "candidate-as-dimension"
    difference_kernel = "get_diffs"


STRATEGIES = {
    "loop-in-unit": lambda: LoopInUnit(),
    "loop-in-unit-fused": lambda: LoopInUnit(fused=True),
    "candidate-as-dimension": CandidateAsDimension,
}


def get_strategy(name: str) -> PartitionStrategy:
    try:
        return STRATEGIES[name]()
    except KeyError:
        raise InvalidInput(
            f"unknown strategy {name!r}, expected one of {sorted(STRATEGIES)}"
        ) from None
