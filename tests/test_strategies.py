import numpy as np
import pytest

from block_matching import (
    CandidateAsDimension,
    GrayscaleImage,
    InvalidInput,
    LoopInUnit,
    SerialExecutor,
    ThreadExecutor,
    get_strategy,
)
from block_matching.executors import split_grid

from .conftest import reference_disparity

STRATEGIES = [LoopInUnit(), LoopInUnit(fused=True), CandidateAsDimension()]

CASES = [
    # width, height, max_disparity, block_width, block_height, shift
    (16, 16, 8, 4, 4, 3),
    (44, 22, 11, 11, 11, 5),
    (37, 23, 5, 6, 4, 1),
    (9, 5, 9, 3, 5, 0),
]


@pytest.fixture(params=["serial", "threads"])
def executor(request):
    if request.param == "serial":
        yield SerialExecutor()
    else:
        with ThreadExecutor(workers=3) as threads:
            yield threads


@pytest.mark.parametrize("strategy", STRATEGIES, ids=repr)
@pytest.mark.parametrize("case", CASES)
def test_matches_reference(make_pair, executor, strategy, case):
    width, height, max_disparity, block_width, block_height, shift = case
    left, right = make_pair(width, height, shift)
    expected = reference_disparity(
        left.pixels, right.pixels, max_disparity, block_width, block_height
    )
    disparity = strategy.run(
        left, right, max_disparity, block_width, block_height, executor
    )
    assert disparity.shape == expected.shape
    np.testing.assert_array_equal(disparity, expected)


@pytest.mark.parametrize("case", CASES)
def test_variants_agree(make_pair, executor, case):
    width, height, max_disparity, block_width, block_height, shift = case
    left, right = make_pair(width, height, shift)
    results = [
        strategy.run(left, right, max_disparity, block_width, block_height, executor)
        for strategy in STRATEGIES
    ]
    for result in results[1:]:
        np.testing.assert_array_equal(result, results[0])


@pytest.mark.parametrize("strategy", STRATEGIES, ids=repr)
def test_deterministic(make_pair, strategy):
    left, right = make_pair(30, 20, shift=2)
    first = strategy.run(left, right, 7, 5, 5)
    for _ in range(3):
        np.testing.assert_array_equal(strategy.run(left, right, 7, 5, 5), first)


@pytest.mark.parametrize("strategy", STRATEGIES, ids=repr)
@pytest.mark.parametrize("max_disparity", [1, 4, 16])
def test_identical_images_give_zero(make_pair, strategy, max_disparity):
    left, _ = make_pair(32, 16)
    disparity = strategy.run(left, left, max_disparity, 4, 4)
    assert (disparity == 0).all()


@pytest.mark.parametrize("strategy", STRATEGIES, ids=repr)
def test_recovers_known_shift(make_pair, strategy):
    left, right = make_pair(48, 24, shift=3)
    disparity = strategy.run(left, right, 8, 8, 8)
    # the last block column wraps around in the rolled right image
    assert (disparity[:, :-1] == 3).all()


@pytest.mark.parametrize("strategy", STRATEGIES, ids=repr)
def test_right_edge_blocks_are_penalized(strategy):
    # a flat pair matches equally well at every offset that stays inside the
    # image, so only the saturation past the edge separates the candidates
    flat = GrayscaleImage.from_array(np.full((16, 16), 100, dtype=np.uint8))
    disparity = strategy.run(flat, flat, 8, 4, 4)
    assert disparity.shape == (4, 4)
    assert (disparity == 0).all()


@pytest.mark.parametrize("strategy", STRATEGIES, ids=repr)
def test_boundary_candidate_never_wraps_to_next_row(strategy):
    # right(x) = left(x + 1) inside a row and right(15) = left(0, y + 1), so a
    # read wrapping into the next row would make k=1 free for the last block
    row = np.arange(16, dtype=np.uint8) * 10
    left = np.tile(row, (4, 1))
    right = np.tile(np.append(row[1:], row[0]), (4, 1))
    disparity = strategy.run(
        GrayscaleImage.from_array(left), GrayscaleImage.from_array(right), 8, 4, 4
    )
    assert disparity.tolist() == [[1, 1, 1, 0]]


@pytest.mark.parametrize("strategy", STRATEGIES, ids=repr)
def test_equal_costs_pick_smallest_offset(strategy):
    # period-2 texture shifted by one matches perfectly at k=1 and k=3
    row = np.array([10, 200] * 8, dtype=np.uint8)
    left = GrayscaleImage.from_array(np.tile(row, (4, 1)))
    right = GrayscaleImage.from_array(np.tile(np.roll(row, -1), (4, 1)))
    disparity = strategy.run(left, right, 4, 4, 4)
    assert disparity.tolist() == [[1, 1, 1, 1]]


@pytest.mark.parametrize("strategy", STRATEGIES, ids=repr)
def test_shape_contract(make_pair, strategy):
    left, right = make_pair(44, 22)
    disparity = strategy.run(left, right, 11, 11, 11)
    assert disparity.shape == (2, 4)
    assert disparity.min() >= 0 and disparity.max() < 11


@pytest.mark.parametrize("strategy", STRATEGIES, ids=repr)
def test_rejects_invalid_input(make_pair, strategy):
    left, right = make_pair(16, 8)
    smaller = GrayscaleImage.from_array(np.zeros((8, 15), dtype=np.uint8))
    with pytest.raises(InvalidInput):
        strategy.run(left, smaller, 4, 4, 4)
    with pytest.raises(InvalidInput):
        strategy.run(left, right, 0, 4, 4)
    with pytest.raises(InvalidInput):
        strategy.run(left, right, 4, 0, 4)
    with pytest.raises(InvalidInput):
        strategy.run(left, right, 4, 4, 0)


def test_get_strategy():
    assert isinstance(get_strategy("candidate-as-dimension"), CandidateAsDimension)
    assert get_strategy("loop-in-unit-fused").fused
    assert get_strategy("loop-in-unit").name == "loop-in-unit"
    with pytest.raises(InvalidInput):
        get_strategy("semi-global")


def test_split_grid_covers_every_row():
    tiles = split_grid((10, 4, 3), 3)
    assert [(t[0].start, t[0].stop) for t in tiles] == [(0, 4), (4, 8), (8, 10)]
    assert all(t[1:] == (slice(0, 4), slice(0, 3)) for t in tiles)
    assert len(split_grid((2, 5), 8)) == 2


def test_thread_executor_rejects_zero_workers():
    with pytest.raises(InvalidInput):
        ThreadExecutor(workers=0)


@pytest.mark.parametrize("strategy", STRATEGIES, ids=repr)
def test_block_larger_than_image_gives_empty_grid(make_pair, executor, strategy):
    left, right = make_pair(4, 4)
    assert strategy.run(left, right, 2, 5, 2, executor).shape == (2, 0)
    assert strategy.run(left, right, 2, 2, 5, executor).shape == (0, 2)
