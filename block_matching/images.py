from dataclasses import dataclass
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image

from .errors import InvalidInput


@dataclass(frozen=True)
class GrayscaleImage:
    """
    8-bit single channel image, read-only once constructed.
    Args:
        width (int): number of columns
        height (int): number of rows
        pixels (np.ndarray): uint8 samples with shape (height, width)
    """

    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise InvalidInput(
                f"image size must be positive, got {self.width}x{self.height}"
            )
        pixels = np.asarray(self.pixels)
        if pixels.shape != (self.height, self.width):
            raise InvalidInput(
                f"pixels of shape {pixels.shape} do not match "
                f"{self.width}x{self.height}"
            )
        if pixels.dtype != np.uint8 and (pixels.min() < 0 or pixels.max() > 255):
            raise InvalidInput(
                f"samples must lie in [0, 255], got [{pixels.min()}, {pixels.max()}]"
            )
        pixels = np.array(pixels, dtype=np.uint8, copy=True)
        pixels.setflags(write=False)
        object.__setattr__(self, "pixels", pixels)

    @property
    def samples(self) -> np.ndarray:
        """flat row-major view, length width * height"""
        return self.pixels.reshape(-1)

    @property
    def shape(self) -> tuple[int, int]:
        return self.height, self.width

    @classmethod
    def from_buffer(cls, samples, width: int, height: int) -> "GrayscaleImage":
        """
        wrap a raw row-major buffer of 8-bit samples
        Args:
            samples: bytes or 1-D sequence of length width * height
            width (int): image width
            height (int): image height
        """
        if isinstance(samples, (bytes, bytearray, memoryview)):
            flat = np.frombuffer(samples, dtype=np.uint8)
        else:
            flat = np.asarray(samples).reshape(-1)
        if flat.size != width * height:
            raise InvalidInput(
                f"buffer holds {flat.size} samples, expected {width * height}"
            )
        return cls(width=width, height=height, pixels=flat.reshape(height, width))

    @classmethod
    def from_array(cls, array: np.ndarray) -> "GrayscaleImage":
        array = np.asarray(array)
        if array.ndim != 2:
            raise InvalidInput(f"expected a 2-D array, got shape {array.shape}")
        return cls(width=array.shape[1], height=array.shape[0], pixels=array)

    @classmethod
    def open(cls, path: Union[str, Path]) -> "GrayscaleImage":
        """decode an image file and convert it to grayscale"""
        img = np.array(Image.open(path).convert("L"), dtype=np.uint8)
        return cls.from_array(img)


def save_rgb(rgb: np.ndarray, path: Union[str, Path]) -> None:
    """
    encode an RGB image, format picked from the file suffix
    Args:
        rgb (np.ndarray): uint8 array of shape (H, W, 3)
        path: output file
    """
    if rgb.ndim != 3 or rgb.shape[2] != 3:
        raise InvalidInput(f"expected an (H, W, 3) array, got {rgb.shape}")
    if rgb.size == 0:
        raise InvalidInput(
            f"cannot encode an empty {rgb.shape[1]}x{rgb.shape[0]} image"
        )
    Image.fromarray(np.ascontiguousarray(rgb, dtype=np.uint8)).save(path)
