"""
Executors run work descriptions, a kernel name plus its grid and buffer
bindings, on some parallel backend. `launch` returns only once every
work-item of the grid has finished, which is the barrier between stages.
"""

import logging
import multiprocessing as mp
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from multiprocessing.pool import ThreadPool
from typing import Mapping, Optional

import numpy as np

from .errors import InvalidInput
from .kernels import KERNELS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkDescription:
    """
    Args:
        kernel (str): name of the kernel to run
        grid (tuple[int, ...]): number of work-items along each axis
        inputs: read-only buffers
        outputs: buffers written by the kernel
        scalars: integer arguments
    """

    kernel: str
    grid: tuple
    inputs: Mapping[str, np.ndarray] = field(default_factory=dict)
    outputs: Mapping[str, np.ndarray] = field(default_factory=dict)
    scalars: Mapping[str, int] = field(default_factory=dict)

    def bindings(self) -> dict:
        return {**self.inputs, **self.outputs, **self.scalars}

    @property
    def size(self) -> int:
        return int(np.prod(self.grid))


def split_grid(grid: tuple, parts: int) -> list:
    """
    split the first axis of a grid into at most `parts` contiguous tiles
    Returns:
        list of tiles, each a tuple with one slice per axis
    """
    step = max(1, -(-grid[0] // parts))
    rest = tuple(slice(0, n) for n in grid[1:])
    return [
        (slice(start, min(start + step, grid[0])),) + rest
        for start in range(0, grid[0], step)
    ]


class ParallelExecutor(ABC):
    name = "abstract"
    kernels = KERNELS

    def launch(self, work: WorkDescription) -> None:
        if work.kernel not in self.kernels:
            raise InvalidInput(f"unknown kernel {work.kernel!r}")
        if work.size == 0:
            logger.debug("skipping %s, empty grid %s", work.kernel, work.grid)
            return
        logger.debug("launching %s on %s grid %s", work.kernel, self.name, work.grid)
        self._run(work)

    @abstractmethod
    def _run(self, work: WorkDescription) -> None:
        pass

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


class SerialExecutor(ParallelExecutor):
    """runs the whole grid as a single tile in the calling thread"""

    name = "serial"

    def _run(self, work):
        tile = tuple(slice(0, n) for n in work.grid)
        self.kernels[work.kernel](tile, **work.bindings())


class ThreadExecutor(ParallelExecutor):
    """
    splits the first grid axis into row tiles and runs them on a thread pool,
    numpy releases the GIL inside the heavy array operations
    """

    name = "threads"

    def __init__(self, workers: Optional[int] = None):
        if workers is not None and workers < 1:
            raise InvalidInput(f"workers must be positive, got {workers}")
        self.workers = workers or max(1, mp.cpu_count() - 1)
        self._pool = None

    @property
    def pool(self) -> ThreadPool:
        if self._pool is None:
            self._pool = ThreadPool(processes=self.workers)
        return self._pool

    def _run(self, work):
        kernel = self.kernels[work.kernel]
        bindings = work.bindings()
        tiles = split_grid(work.grid, self.workers)
        # map blocks until every tile is done and re-raises worker errors
        self.pool.map(lambda tile: kernel(tile, **bindings), tiles)

    def close(self):
        if self._pool is not None:
            self._pool.close()
            self._pool.join()
            self._pool = None


BACKENDS = ("serial", "threads", "torch")


def get_executor(
    backend: str = "serial",
    workers: Optional[int] = None,
    device: Optional[str] = None,
) -> ParallelExecutor:
    if backend == "serial":
        return SerialExecutor()
    if backend == "threads":
        return ThreadExecutor(workers=workers)
    if backend == "torch":
        # torch is heavy to import, load it only when asked for
        from .torch_backend import TorchExecutor

        return TorchExecutor(device=device)
    raise InvalidInput(f"unknown backend {backend!r}, expected one of {BACKENDS}")
