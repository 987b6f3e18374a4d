"""
Tensor versions of the work-item kernels. The torch executor hands the whole
grid to the device in one launch, tiling is left to torch.
"""

import logging
from typing import Optional

import numpy as np
import torch

from .executors import ParallelExecutor, WorkDescription
from .kernels import SATURATED

logger = logging.getLogger(__name__)


def shifted_difference(
    left: torch.Tensor, right: torch.Tensor, offsets: torch.Tensor
) -> torch.Tensor:
    """
    |left(x + k, y) - right(x, y)| for the full image and every k in offsets
    Returns:
        uint8 tensor of shape (H, W, len(offsets))
    """
    width = left.shape[1]
    xs = torch.arange(width, device=left.device)[:, None] + offsets[None, :]
    inside = xs < width
    shifted = left[:, xs.clamp(max=width - 1)].to(torch.int16)
    diff = (shifted - right.to(torch.int16)[:, :, None]).abs()
    return diff.masked_fill(~inside, SATURATED).to(torch.uint8)


def get_diffs(left, right, diffs, max_disparity):
    offsets = torch.arange(max_disparity, device=left.device)
    diffs.copy_(shifted_difference(left, right, offsets))


def get_diffs_loop(left, right, diffs, max_disparity):
    for k in range(max_disparity):
        offset = torch.tensor([k], device=left.device)
        diffs[:, :, k] = shifted_difference(left, right, offset)[..., 0]


def get_block_disparity(diffs, disparity, block_width, block_height):
    result_h, result_w = disparity.shape
    region = diffs[: result_h * block_height, : result_w * block_width]
    costs = (
        region.to(torch.int32)
        .reshape(result_h, block_height, result_w, block_width, -1)
        .sum(dim=(1, 3))
    )
    # ties resolve to the first minimal index
    disparity.copy_(costs.argmin(dim=-1))


def block_match_fused(left, right, disparity, max_disparity, block_width, block_height):
    result_h, result_w = disparity.shape
    left = left[: result_h * block_height]
    right = right[: result_h * block_height]
    best_cost = None
    best = torch.zeros_like(disparity)
    for k in range(max_disparity):
        offset = torch.tensor([k], device=left.device)
        diff = shifted_difference(left, right, offset)[..., 0]
        cost = (
            diff[:, : result_w * block_width]
            .to(torch.int32)
            .reshape(result_h, block_height, result_w, block_width)
            .sum(dim=(1, 3))
        )
        if best_cost is None:
            best_cost = cost
            continue
        better = cost < best_cost
        best_cost = torch.where(better, cost, best_cost)
        best[better] = k
    disparity.copy_(best)


TORCH_KERNELS = {
    "get_diffs": get_diffs,
    "get_diffs_loop": get_diffs_loop,
    "get_block_disparity": get_block_disparity,
    "block_match_fused": block_match_fused,
}


def to_tensor(array: np.ndarray, device) -> torch.Tensor:
    # copy first, the host buffers are read-only
    return torch.from_numpy(np.array(array, copy=True)).to(device)


class TorchExecutor(ParallelExecutor):
    """
    copies the bound buffers to a torch device, runs the kernel on the whole
    grid and copies the outputs back before returning
    """

    name = "torch"
    kernels = TORCH_KERNELS

    def __init__(self, device: Optional[str] = None):
        if device is None:
            device = "cuda" if torch.cuda.is_available() else "cpu"
        self.device = torch.device(device)
        logger.debug("torch executor on %s", self.device)

    def _run(self, work: WorkDescription):
        tensors = {
            name: to_tensor(array, self.device)
            for name, array in {**work.inputs, **work.outputs}.items()
        }
        with torch.no_grad():
            self.kernels[work.kernel](**tensors, **work.scalars)
        for name, array in work.outputs.items():
            array[...] = tensors[name].cpu().numpy()
