from .engine import aggregate_blocks, compute_differences, match_blocks_fused
from .errors import BlockMatchingError, InvalidInput
from .executors import (
    ParallelExecutor,
    SerialExecutor,
    ThreadExecutor,
    WorkDescription,
    get_executor,
)
from .hooks import StageHook, TimingHook
from .images import GrayscaleImage, save_rgb
from .matcher import MatcherConfig, StereoBlockMatcher, compute_disparity
from .strategies import (
    CandidateAsDimension,
    LoopInUnit,
    PartitionStrategy,
    get_strategy,
)
from .visualize import DisparityVisualizer, hsv_to_rgb, show, visualize

__version__ = "0.1.0"
