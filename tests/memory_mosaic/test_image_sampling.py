import io

import numpy as np
import pytest
from PIL import Image

from memory_mosaic.models.grid_position import GridPosition
from memory_mosaic.models.render_mode import RenderMode
from memory_mosaic.utils.errors import DegenerateGridError, ImageLoadError, InvalidGridError
from memory_mosaic.utils.image_processing import (
    build_mosaic_configurations,
    calculate_brightness,
    calculate_grid_dimensions,
    load_reference_pixels,
    np2pil,
    pil2bytes,
    sample_cells,
)


def rgba_image(height: int, width: int, color=(128, 128, 128), alpha: int = 255) -> np.ndarray:
    image = np.zeros((height, width, 4), dtype="uint8")
    image[:, :, :3] = color
    image[:, :, 3] = alpha
    return image


def test_uniform_gray_cells():
    cells = sample_cells(rgba_image(4, 4), 2, 2)
    assert len(cells) == 4
    for cell in cells:
        assert cell.hex_color == "#808080"
        assert cell.color == (128, 128, 128)
        assert cell.brightness == 128
        assert cell.alpha == 1.0


@pytest.mark.parametrize("grid_width,grid_height", [(1, 1), (3, 2), (7, 5), (40, 30)])
def test_cell_coverage(grid_width, grid_height):
    rng = np.random.default_rng(7)
    image = rng.integers(0, 256, size=(30, 40, 4), dtype="uint8")
    cells = sample_cells(image, grid_width, grid_height)
    assert len(cells) == grid_width * grid_height
    positions = [(c.position.row, c.position.col) for c in cells]
    assert len(set(positions)) == len(positions)
    # row-major order
    assert positions == [(r, c) for r in range(grid_height) for c in range(grid_width)]


def test_cells_average_their_own_pixels():
    image = rgba_image(4, 4, color=(255, 0, 0))
    image[:, 2:, :3] = (0, 0, 255)
    image[2:, :, 3] = 0
    cells = sample_cells(image, 2, 2)
    assert [c.hex_color for c in cells] == ["#ff0000", "#0000ff", "#ff0000", "#0000ff"]
    assert [c.alpha for c in cells] == [1.0, 1.0, 0.0, 0.0]
    assert not cells[0].is_transparent
    assert cells[2].is_transparent


def test_partial_transparency_is_averaged():
    image = rgba_image(2, 2)
    image[0, :, 3] = 0
    cells = sample_cells(image, 1, 1)
    assert cells[0].alpha == pytest.approx(0.5)


def test_remainder_pixels_are_not_sampled():
    # 5x5 pixels into 2x2 cells of 2x2 pixels: the last pixel row/column is ignored
    image = rgba_image(5, 5, color=(100, 100, 100))
    image[4, :, :3] = 255
    image[:, 4, :3] = 255
    cells = sample_cells(image, 2, 2)
    assert all(c.color == (100, 100, 100) for c in cells)


def test_color_and_brightness_rounding():
    image = rgba_image(1, 2, color=(0, 0, 0))
    image[0, 1, :3] = (255, 0, 1)
    cells = sample_cells(image, 1, 1)
    # mean color (127.5, 0, 0.5) is rounded half up
    assert cells[0].color == (128, 0, 1)
    assert cells[0].brightness == 38  # 0.299 * 127.5 + 0.114 * 0.5 = 38.1795


def test_brightness_formula():
    assert calculate_brightness(255, 0, 0) == 76
    assert calculate_brightness(0, 255, 0) == 150
    assert calculate_brightness(0, 0, 255) == 29
    assert calculate_brightness(255, 255, 255) == 255
    assert calculate_brightness(0, 0, 0) == 0


@pytest.mark.parametrize("grid_width,grid_height", [(5, 2), (2, 5), (0, 2), (2, -1)])
def test_invalid_grid(grid_width, grid_height):
    with pytest.raises(InvalidGridError):
        sample_cells(rgba_image(4, 4), grid_width, grid_height)


def test_grid_dimensions_keep_aspect_ratio():
    grid_width, grid_height = calculate_grid_dimensions(4 / 3, 1200)
    assert (grid_width, grid_height) == (40, 30)
    assert abs(grid_width / grid_height - 4 / 3) / (4 / 3) < 0.05
    assert abs(grid_width * grid_height - 1200) / 1200 < 0.1


@pytest.mark.parametrize("aspect_ratio,target_cells", [(1.0, 1000), (0.75, 5000), (16 / 9, 10000), (2.5, 1)])
def test_grid_dimensions_close_to_target(aspect_ratio, target_cells):
    grid_width, grid_height = calculate_grid_dimensions(aspect_ratio, target_cells)
    assert grid_width >= 1 and grid_height >= 1
    if target_cells >= 1000:
        assert abs(grid_width / grid_height - aspect_ratio) / aspect_ratio < 0.05
        assert abs(grid_width * grid_height - target_cells) / target_cells < 0.1


@pytest.mark.parametrize("aspect_ratio,target_cells", [(1.0, 0), (1.0, -5), (0.0, 100), (-1.0, 100), (10000.0, 1)])
def test_degenerate_grid(aspect_ratio, target_cells):
    with pytest.raises(DegenerateGridError):
        calculate_grid_dimensions(aspect_ratio, target_cells)


def test_load_reference_pixels():
    rgb = np.ones((30, 40, 3), dtype="uint8") * 90
    pixels = load_reference_pixels(pil2bytes(np2pil(rgb), "JPEG"))
    assert pixels.shape == (30, 40, 4)
    assert np.all(pixels[:, :, 3] == 255)

    pixels = load_reference_pixels(pil2bytes(np2pil(rgba_image(300, 400))), max_size=100)
    assert pixels.shape == (75, 100, 4)


def test_load_reference_pixels_invalid_image():
    with pytest.raises(ImageLoadError):
        load_reference_pixels(b"definitely not an image")


def test_load_reference_pixels_too_many_pixels(monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
    with pytest.raises(ImageLoadError):
        load_reference_pixels(pil2bytes(np2pil(rgba_image(40, 40))))


def test_load_reference_pixels_applies_exif_orientation():
    image = Image.new("RGB", (40, 30), (90, 90, 90))
    exif = image.getexif()
    exif[0x0112] = 6  # rotated by 90 degrees
    img_byte_arr = io.BytesIO()
    image.save(img_byte_arr, format="JPEG", exif=exif.tobytes())

    pixels = load_reference_pixels(img_byte_arr.getvalue())
    assert pixels.shape == (40, 30, 4)

    pixels = load_reference_pixels(img_byte_arr.getvalue(), max_size=20)
    assert pixels.shape == (20, 15, 4)


def test_build_mosaic_configurations():
    image = rgba_image(60, 80)
    image[:, :10, 3] = 0
    configurations = build_mosaic_configurations(image, "portrait.png", 48)

    canonical = configurations[RenderMode.CANONICAL]
    assert (canonical.grid_width, canonical.grid_height) == (8, 6)
    assert canonical.reference_image_id == "portrait.png"
    assert canonical.is_transparent(GridPosition(row=3, col=0))
    assert not canonical.is_transparent(GridPosition(row=3, col=1))

    coarse = configurations[RenderMode.COARSE]
    assert (coarse.grid_width, coarse.grid_height) == (4, 3)
    assert coarse.cell_at(GridPosition(row=0, col=0)).alpha == pytest.approx(0.5)
    assert coarse.generated_at == canonical.generated_at


def test_build_mosaic_configurations_too_small_for_coarse_mode():
    with pytest.raises(DegenerateGridError):
        build_mosaic_configurations(rgba_image(10, 10), "tiny.png", 1)
