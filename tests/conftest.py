import numpy as np
import pytest

from block_matching import GrayscaleImage


def reference_disparity(left, right, max_disparity, block_width, block_height):
    """plain loop block matcher used as ground truth"""
    left = np.asarray(left, dtype=np.int64)
    right = np.asarray(right, dtype=np.int64)
    height, width = left.shape
    result = np.zeros((height // block_height, width // block_width), dtype=np.int64)
    for by in range(result.shape[0]):
        for bx in range(result.shape[1]):
            best_k, best_cost = 0, None
            for k in range(max_disparity):
                cost = 0
                for y in range(by * block_height, (by + 1) * block_height):
                    for x in range(bx * block_width, (bx + 1) * block_width):
                        if x + k < width:
                            cost += abs(left[y, x + k] - right[y, x])
                        else:
                            cost += 255
                if best_cost is None or cost < best_cost:
                    best_k, best_cost = k, cost
            result[by, bx] = best_k
    return result


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def make_pair(rng):
    def make(width, height, shift=0):
        left = rng.integers(0, 256, size=(height, width), dtype=np.uint8)
        right = np.roll(left, -shift, axis=1)
        return GrayscaleImage.from_array(left), GrayscaleImage.from_array(right)

    return make
