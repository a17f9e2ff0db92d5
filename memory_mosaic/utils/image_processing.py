import io
import logging
import math
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from memory_mosaic.models.cell_color import CellColorData
from memory_mosaic.models.grid_position import GridPosition
from memory_mosaic.models.mosaic_configuration import MosaicConfiguration
from memory_mosaic.models.render_mode import RenderMode
from memory_mosaic.utils.errors import DegenerateGridError, ImageLoadError, InvalidGridError

# ITU-R BT.601 luma weights
LUMINANCE_WEIGHTS = (0.299, 0.587, 0.114)


def bytes2pil(byte_arr: bytes) -> Image.Image:
    return Image.open(io.BytesIO(byte_arr))


def pil2bytes(image: Image.Image, image_format: str = "PNG") -> bytes:
    img_byte_arr = io.BytesIO()
    image.save(img_byte_arr, format=image_format)
    return img_byte_arr.getvalue()


def np2pil(array: np.ndarray) -> Image.Image:
    return Image.fromarray(array)


def pil2np(image: Image.Image) -> np.ndarray:
    return np.array(image)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_brightness(r: float, g: float, b: float) -> int:
    brightness = round_half_up(LUMINANCE_WEIGHTS[0] * r + LUMINANCE_WEIGHTS[1] * g + LUMINANCE_WEIGHTS[2] * b)
    return min(max(brightness, 0), 255)


def load_reference_pixels(image_bytes: bytes, max_size: Optional[int] = None) -> np.ndarray:
    """
    Decode a reference image into an RGBA pixel array
    Args:
        image_bytes: The encoded image (any format supported by Pillow)
        max_size: If set, larger images are shrunk to fit into a max_size x max_size box (aspect ratio is kept)

    Returns: A uint8 array of shape (height, width, 4)

    Raises:
        ImageLoadError: If the bytes can not be decoded

    """
    try:
        image = bytes2pil(image_bytes)
        if max_size:
            # let the decoder (JPEG) skip resolution that the thumbnail would discard anyway
            image.draft(None, (max_size, max_size))
        image = ImageOps.exif_transpose(image)  # correct rotation of image if EXIF orientation flag is set
        image = image.convert("RGBA")
        if max_size:
            image.thumbnail((max_size, max_size))
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise ImageLoadError("The reference image could not be read") from exc
    return pil2np(image)


def calculate_grid_dimensions(aspect_ratio: float, target_cells: int) -> Tuple[int, int]:
    """
    Find a grid that keeps the aspect ratio of the reference image and has roughly target_cells cells.
    Width and height are rounded independently, so the cell count may be off by up to one row/column.
    Args:
        aspect_ratio: Width/height of the reference image
        target_cells: The desired number of cells

    Returns: (grid_width, grid_height)

    Raises:
        DegenerateGridError: If the inputs do not produce at least a 1x1 grid

    """
    if target_cells < 1 or not aspect_ratio > 0:
        raise DegenerateGridError(
            f"Can not build a grid for aspect ratio {aspect_ratio} and {target_cells} target cells"
        )
    grid_height = round_half_up(math.sqrt(target_cells / aspect_ratio))
    grid_width = round_half_up(grid_height * aspect_ratio)
    if grid_width < 1 or grid_height < 1:
        raise DegenerateGridError(
            f"Aspect ratio {aspect_ratio} and {target_cells} target cells result in a {grid_width}x{grid_height} grid"
        )
    return grid_width, grid_height


def sample_cells(pixels: np.ndarray, grid_width: int, grid_height: int) -> List[CellColorData]:
    """
    Partition an RGBA image into a grid and compute the average color, brightness and transparency of every cell.
    All cells have the same pixel size, the remainder strip at the right/bottom edge is not sampled.
    Args:
        pixels: RGBA pixel array of shape (height, width, 4)
        grid_width: The number of columns
        grid_height: The number of rows

    Returns: One CellColorData per cell in row-major order

    Raises:
        InvalidGridError: If a cell would be smaller than one pixel

    """
    height_px, width_px = pixels.shape[:2]
    if grid_width <= 0 or grid_height <= 0:
        raise InvalidGridError(f"Grid dimensions have to be positive, got {grid_width}x{grid_height}")
    cell_w = width_px // grid_width
    cell_h = height_px // grid_height
    if cell_w == 0 or cell_h == 0:
        raise InvalidGridError(
            f"A {grid_width}x{grid_height} grid does not fit into a {width_px}x{height_px} pixel image"
        )

    # average every cell at once: (rows, cell_h, cols, cell_w, channels) -> (rows, cols, channels)
    sampled_area = pixels[: grid_height * cell_h, : grid_width * cell_w, :4].astype(np.float64)
    means = sampled_area.reshape(grid_height, cell_h, grid_width, cell_w, 4).mean(axis=(1, 3))

    cells = []
    for row in range(grid_height):
        for col in range(grid_width):
            r, g, b, a = means[row, col]
            cells.append(
                CellColorData(
                    position=GridPosition(row=row, col=col),
                    color=(round_half_up(r), round_half_up(g), round_half_up(b)),
                    brightness=calculate_brightness(r, g, b),
                    alpha=float(a) / 255,
                )
            )
    return cells


def build_mosaic_configurations(
    pixels: np.ndarray, reference_image_id: str, target_cells: int
) -> Dict[RenderMode, MosaicConfiguration]:
    """
    Create the configuration of every render mode for a reference image. The canonical grid is sized by the
    image aspect ratio, every other mode scales the canonical grid down and is sampled from the same pixels.
    Args:
        pixels: RGBA pixel array of the reference image
        reference_image_id: The identifier stored with the configurations
        target_cells: The desired number of cells of the canonical grid

    Returns: A configuration per render mode

    """
    height_px, width_px = pixels.shape[:2]
    if height_px == 0:
        raise DegenerateGridError("The reference image has no pixels")
    canonical_width, canonical_height = calculate_grid_dimensions(width_px / height_px, target_cells)
    generated_at = datetime.now(timezone.utc)

    configurations = {}
    for mode in RenderMode:
        grid_width, grid_height = mode.grid_size(canonical_width, canonical_height)
        if grid_width < 1 or grid_height < 1:
            raise DegenerateGridError(
                f"The {canonical_width}x{canonical_height} grid is too small for render mode '{mode.value}'"
            )
        configurations[mode] = MosaicConfiguration(
            reference_image_id=reference_image_id,
            grid_width=grid_width,
            grid_height=grid_height,
            cells=tuple(sample_cells(pixels, grid_width, grid_height)),
            generated_at=generated_at,
        )
        logging.info(
            "Sampled %s configuration for '%s': %sx%s cells", mode.value, reference_image_id, grid_width, grid_height
        )
    return configurations
