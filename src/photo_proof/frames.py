# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Frame sources for the capture gate.

A frame source hands over the current camera frame as a Pillow image.
:class:`FileFrameSource` reads a still from disk; :class:`MockFrameSource`
generates a synthetic frame for development and testing without a camera.
"""

import io
import logging
from pathlib import Path
from typing import Protocol, Tuple, Union

import numpy as np
from PIL import Image

from .errors import EncodingFailure

logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    def grab(self) -> Image.Image:
        ...


def load_frame(data: bytes) -> Image.Image:
    """Decode an encoded image, raising EncodingFailure on bad data."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (OSError, ValueError) as e:
        raise EncodingFailure(f"Cannot decode frame: {e}") from e
    return image


class FileFrameSource:
    """Serves the same still image from disk on every grab."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def grab(self) -> Image.Image:
        try:
            data = self.path.read_bytes()
        except OSError as e:
            raise EncodingFailure(f"Cannot read frame {self.path}: {e}") from e
        return load_frame(data)


class MockFrameSource:
    """
    Synthetic frame generator.

    Produces a seeded noise-plus-gradient RGB frame so repeated grabs are
    pixel-identical.
    """

    def __init__(self, size: Tuple[int, int] = (1280, 960), seed: int = 0):
        width, height = size
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid size: {size}")
        self.size = size
        self.seed = seed
        logger.debug(f"Using MockFrameSource {size} (synthetic data)")

    def grab(self) -> Image.Image:
        width, height = self.size
        rng = np.random.default_rng(self.seed)

        noise = rng.integers(0, 48, (height, width, 3), dtype=np.uint16)

        # Sky-to-ground gradient so the stamp has something to sit on
        vertical = np.linspace(200, 60, height, dtype=np.float64)[:, np.newaxis]
        horizontal = np.linspace(0, 40, width, dtype=np.float64)[np.newaxis, :]
        red = vertical * 0.6 + horizontal
        green = np.broadcast_to(vertical * 0.8, (height, width))
        blue = vertical + horizontal * 0.5
        base = np.stack([red, green, blue], axis=-1)

        pixels = np.clip(base + noise, 0, 255).astype(np.uint8)
        return Image.fromarray(pixels)
