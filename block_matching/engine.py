"""
Difference volume and block aggregation stages of the block matcher.
"""

from typing import Optional

import numpy as np

from .errors import InvalidInput
from .executors import ParallelExecutor, SerialExecutor, WorkDescription
from .images import GrayscaleImage

DISPARITY_DTYPE = np.int32


def check_pair(left: GrayscaleImage, right: GrayscaleImage, max_disparity: int):
    """
    make sure a stereo pair can be matched with the given candidate window
    Raises:
        InvalidInput: on mismatched sizes or a window outside [1, width]
    """
    if left.shape != right.shape:
        raise InvalidInput(
            f"left image is {left.width}x{left.height} but right image is "
            f"{right.width}x{right.height}"
        )
    if max_disparity <= 0:
        raise InvalidInput(f"max_disparity must be positive, got {max_disparity}")
    if max_disparity > left.width:
        raise InvalidInput(
            f"max_disparity {max_disparity} exceeds image width {left.width}"
        )


def check_blocks(width: int, height: int, block_width: int, block_height: int):
    """a block larger than the image is allowed and yields an empty grid axis"""
    if block_width <= 0 or block_height <= 0:
        raise InvalidInput(
            f"block size must be positive, got {block_width}x{block_height}"
        )


def result_shape(width: int, height: int, block_width: int, block_height: int):
    """shape of the disparity grid, trailing partial blocks are dropped"""
    return height // block_height, width // block_width


def compute_differences(
    left: GrayscaleImage,
    right: GrayscaleImage,
    max_disparity: int,
    executor: Optional[ParallelExecutor] = None,
    kernel: str = "get_diffs",
) -> np.ndarray:
    """
    compute |left(x + k, y) - right(x, y)| for every pixel and candidate
    Args:
        left (GrayscaleImage): left image
        right (GrayscaleImage): right image
        max_disparity (int): number of candidate offsets
        executor (ParallelExecutor): backend running the work-items
        kernel (str): `get_diffs` for one work-item per (x, y, k),
            `get_diffs_loop` for one per (x, y) looping over k

    Returns:
        read-only uint8 difference volume with shape (H, W, max_disparity),
        candidates past the right edge hold 255
    """
    check_pair(left, right, max_disparity)
    executor = executor or SerialExecutor()
    diffs = np.empty((left.height, left.width, max_disparity), dtype=np.uint8)
    if kernel == "get_diffs":
        grid = diffs.shape
    elif kernel == "get_diffs_loop":
        grid = diffs.shape[:2]
    else:
        raise InvalidInput(f"{kernel!r} is not a difference kernel")
    executor.launch(
        WorkDescription(
            kernel=kernel,
            grid=grid,
            inputs={"left": left.pixels, "right": right.pixels},
            outputs={"diffs": diffs},
            scalars={"max_disparity": max_disparity},
        )
    )
    diffs.setflags(write=False)
    return diffs


def aggregate_blocks(
    diffs: np.ndarray,
    block_width: int,
    block_height: int,
    executor: Optional[ParallelExecutor] = None,
) -> np.ndarray:
    """
    sum the difference volume over every full block and pick the offset with
    the smallest sum, the smallest offset wins ties
    Args:
        diffs (np.ndarray): difference volume with shape (H, W, D)
        block_width (int): block width in pixels
        block_height (int): block height in pixels
        executor (ParallelExecutor): backend running one work-item per block

    Returns:
        disparity grid with shape (H // block_height, W // block_width)
    """
    if diffs.ndim != 3:
        raise InvalidInput(f"expected a (H, W, D) volume, got shape {diffs.shape}")
    height, width, max_disparity = diffs.shape
    if max_disparity == 0:
        raise InvalidInput("max_disparity must be positive, got 0")
    check_blocks(width, height, block_width, block_height)
    executor = executor or SerialExecutor()
    disparity = np.zeros(
        result_shape(width, height, block_width, block_height), dtype=DISPARITY_DTYPE
    )
    executor.launch(
        WorkDescription(
            kernel="get_block_disparity",
            grid=disparity.shape,
            inputs={"diffs": diffs},
            outputs={"disparity": disparity},
            scalars={"block_width": block_width, "block_height": block_height},
        )
    )
    disparity.setflags(write=False)
    return disparity


def match_blocks_fused(
    left: GrayscaleImage,
    right: GrayscaleImage,
    max_disparity: int,
    block_width: int,
    block_height: int,
    executor: Optional[ParallelExecutor] = None,
) -> np.ndarray:
    """difference and aggregation in a single pass per block, no volume"""
    check_pair(left, right, max_disparity)
    check_blocks(left.width, left.height, block_width, block_height)
    executor = executor or SerialExecutor()
    disparity = np.zeros(
        result_shape(left.width, left.height, block_width, block_height),
        dtype=DISPARITY_DTYPE,
    )
    executor.launch(
        WorkDescription(
            kernel="block_match_fused",
            grid=disparity.shape,
            inputs={"left": left.pixels, "right": right.pixels},
            outputs={"disparity": disparity},
            scalars={
                "max_disparity": max_disparity,
                "block_width": block_width,
                "block_height": block_height,
            },
        )
    )
    disparity.setflags(write=False)
    return disparity
