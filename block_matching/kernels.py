"""
Work-item kernels for the numpy executors.

Every kernel receives a tile, one slice per axis of its work grid, and
writes only the output locations owned by the work-items of that tile.
Tiles never overlap, so any number of them may run at once.
"""

import numpy as np

# difference assigned to candidates that fall past the right image edge
SATURATED = 255


def shifted_difference(
    left: np.ndarray, right: np.ndarray, rows: slice, cols: slice, offsets
) -> np.ndarray:
    """
    |left(x + k, y) - right(x, y)| for every y in rows, x in cols, k in offsets
    Args:
        left (np.ndarray): left image, shape (H, W)
        right (np.ndarray): right image, shape (H, W)
        rows (slice): image rows
        cols (slice): image columns
        offsets: candidate offsets

    Returns:
        uint8 array of shape (rows, cols, offsets)
    """
    width = left.shape[1]
    xs = np.arange(cols.start, cols.stop)[:, None] + np.asarray(offsets)[None, :]
    inside = xs < width
    # clamp so nothing is read past the row, the clamped reads are overwritten
    shifted = left[rows][:, np.minimum(xs, width - 1)]
    diff = np.abs(
        shifted.astype(np.int16) - right[rows, cols][:, :, None].astype(np.int16)
    )
    return np.where(inside, diff, SATURATED).astype(np.uint8)


def get_diffs(tile, left, right, diffs, max_disparity):
    """one work-item per (y, x, k)"""
    rows, cols, candidates = tile
    offsets = np.arange(candidates.start, candidates.stop)
    diffs[rows, cols, candidates] = shifted_difference(left, right, rows, cols, offsets)


def get_diffs_loop(tile, left, right, diffs, max_disparity):
    """one work-item per (y, x), looping over the candidates"""
    rows, cols = tile
    for k in range(max_disparity):
        diffs[rows, cols, k] = shifted_difference(left, right, rows, cols, [k])[..., 0]


def _block_region(tile, block_width, block_height):
    block_rows, block_cols = tile
    rows = slice(block_rows.start * block_height, block_rows.stop * block_height)
    cols = slice(block_cols.start * block_width, block_cols.stop * block_width)
    shape = (
        block_rows.stop - block_rows.start,
        block_height,
        block_cols.stop - block_cols.start,
        block_width,
    )
    return rows, cols, shape


def get_block_disparity(tile, diffs, disparity, block_width, block_height):
    """one work-item per block, reducing the finished difference volume"""
    rows, cols, shape = _block_region(tile, block_width, block_height)
    costs = diffs[rows, cols].reshape(shape + (-1,)).sum(axis=(1, 3), dtype=np.uint32)
    # argmin returns the first minimum, i.e. the smallest offset on ties
    disparity[tile] = np.argmin(costs, axis=-1)


def block_match_fused(
    tile, left, right, disparity, max_disparity, block_width, block_height
):
    """
    one work-item per block computing differences and the running argmin
    together, the difference volume is never materialized
    """
    rows, cols, shape = _block_region(tile, block_width, block_height)
    best_cost = None
    best = np.zeros(shape[::2], dtype=disparity.dtype)
    for k in range(max_disparity):
        diff = shifted_difference(left, right, rows, cols, [k])[..., 0]
        cost = diff.reshape(shape).sum(axis=(1, 3), dtype=np.uint32)
        if best_cost is None:
            best_cost = cost
            continue
        # strictly smaller only, so the first minimum wins
        better = cost < best_cost
        best_cost = np.where(better, cost, best_cost)
        best[better] = k
    disparity[tile] = best


KERNELS = {
    "get_diffs": get_diffs,
    "get_diffs_loop": get_diffs_loop,
    "get_block_disparity": get_block_disparity,
    "block_match_fused": block_match_fused,
}
