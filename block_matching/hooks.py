import logging
import time
from contextlib import contextmanager
from typing import Iterable

logger = logging.getLogger(__name__)


class StageHook:
    """
    Observer notified at the boundaries of every pipeline stage.
    Subclasses override the callbacks they care about.
    """

    def on_stage_start(self, stage: str) -> None:
        pass

    def on_stage_end(self, stage: str, elapsed: float) -> None:
        pass


class TimingHook(StageHook):
    """records how long each stage took and logs it"""

    def __init__(self, level: int = logging.INFO):
        self.level = level
        self.timings = {}

    def on_stage_end(self, stage, elapsed):
        self.timings[stage] = elapsed
        logger.log(self.level, "%s %.6f sec", stage, elapsed)

    @property
    def total(self) -> float:
        return sum(self.timings.values())


@contextmanager
def stage(name: str, hooks: Iterable[StageHook] = ()):
    """
    time a pipeline stage, `on_stage_end` only fires for stages that complete,
    a stage that raises is reported through the exception alone
    """
    hooks = tuple(hooks)
    for hook in hooks:
        hook.on_stage_start(name)
    start = time.perf_counter()
    yield
    elapsed = time.perf_counter() - start
    for hook in hooks:
        hook.on_stage_end(name, elapsed)
