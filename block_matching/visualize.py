import numpy as np
from matplotlib import pyplot as plt

from .errors import InvalidInput

# hue given to offset 0
MAX_HUE = 200.0


def hsv_to_rgb(h, s, v) -> np.ndarray:
    """
    convert byte hue, saturation and value to byte RGB, element-wise
    Args:
        h: hue in [0, 255], 255 is a full turn
        s: saturation in [0, 255]
        v: value in [0, 255]

    Returns:
        uint8 array with a trailing axis of length 3
    """
    h, s, v = np.broadcast_arrays(
        np.asarray(h, dtype=np.uint8),
        np.asarray(s, dtype=np.uint8),
        np.asarray(v, dtype=np.uint8),
    )
    one = np.float32(1.0)
    hf = h.astype(np.float32) * np.float32(360.0) / np.float32(255.0)
    hf = hf / np.float32(60.0)
    sf = s.astype(np.float32) / np.float32(255.0)
    vf = v.astype(np.float32)
    h_floor = np.floor(hf)
    ff = hf - h_floor
    p = (vf * (one - sf)).astype(np.uint8)
    q = (vf * (one - sf * ff)).astype(np.uint8)
    t = (vf * (one - sf * (one - ff))).astype(np.uint8)

    # h == 255 lands exactly on sector 6, which wraps to sector 0
    sectors = {
        0: (v, t, p),
        1: (q, v, p),
        2: (p, v, t),
        3: (p, q, v),
        4: (t, p, v),
        5: (v, p, q),
        6: (v, t, p),
    }
    sector = h_floor.astype(np.int64)
    rgb = np.zeros(h.shape + (3,), dtype=np.uint8)
    for index, channels in sectors.items():
        mask = sector == index
        rgb[mask] = np.stack(channels, axis=-1)[mask]
    return rgb


class DisparityVisualizer:
    """
    Renders a disparity grid as a false-color image. Offset 0 gets hue 200,
    the largest offset a hue close to red.
    """

    def __init__(self, max_disparity: int):
        if max_disparity <= 0:
            raise InvalidInput(f"max_disparity must be positive, got {max_disparity}")
        self.max_disparity = max_disparity

    def hue(self, disparity) -> np.ndarray:
        """
        map offsets in [0, max_disparity) to byte hues in (0, 200]
        """
        disparity = np.asarray(disparity)
        if disparity.size and (
            disparity.min() < 0 or disparity.max() >= self.max_disparity
        ):
            raise InvalidInput(
                f"disparities must lie in [0, {self.max_disparity}), got "
                f"[{disparity.min()}, {disparity.max()}]"
            )
        max_disp = np.float32(self.max_disparity)
        normalized = (max_disp - disparity.astype(np.float32)) / max_disp
        return (normalized * np.float32(MAX_HUE)).astype(np.uint8)

    def render(self, disparity) -> np.ndarray:
        """
        Args:
            disparity: disparity grid with shape (rows, cols)

        Returns:
            uint8 RGB image with shape (rows, cols, 3)
        """
        return hsv_to_rgb(self.hue(disparity), 255, 255)


def visualize(disparity, max_disparity: int) -> np.ndarray:
    return DisparityVisualizer(max_disparity).render(disparity)


def show(rgb: np.ndarray, title: str = "Disparity Map"):
    plt.figure(figsize=(8, 6))
    plt.imshow(rgb)
    plt.title(title)
    plt.axis("off")
    plt.show()
