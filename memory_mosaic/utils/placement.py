import random
from typing import AbstractSet, List, Tuple

from memory_mosaic.models.grid_position import GridPosition
from memory_mosaic.models.mosaic_configuration import MosaicConfiguration
from memory_mosaic.utils.errors import MosaicFullError

# margin on each side of the grid, leaving the inner 70% as the preferred area
CENTER_MARGIN = 0.15


def get_center_bounds(configuration: MosaicConfiguration) -> Tuple[float, float, float, float]:
    """
    Get the central area of the grid (without a 15% margin on each side)
    Args:
        configuration: The canonical mosaic configuration

    Returns: row_min, col_min, row_max, col_max (min inclusive, max exclusive)

    """
    return (
        CENTER_MARGIN * configuration.grid_height,
        CENTER_MARGIN * configuration.grid_width,
        (1 - CENTER_MARGIN) * configuration.grid_height,
        (1 - CENTER_MARGIN) * configuration.grid_width,
    )


def get_free_positions(
    configuration: MosaicConfiguration, occupied: AbstractSet[GridPosition]
) -> Tuple[List[GridPosition], List[GridPosition]]:
    """
    Collect all cells that are neither transparent nor occupied
    Args:
        configuration: The canonical mosaic configuration
        occupied: The canonical positions of all existing memories

    Returns: (all free cells, free cells in the center area), both in row-major order

    """
    row_min, col_min, row_max, col_max = get_center_bounds(configuration)
    candidates = []
    center = []
    for cell in configuration.cells:
        if cell.is_transparent or cell.position in occupied:
            continue
        candidates.append(cell.position)
        if row_min <= cell.position.row < row_max and col_min <= cell.position.col < col_max:
            center.append(cell.position)
    return candidates, center


def allocate_position(
    configuration: MosaicConfiguration, occupied: AbstractSet[GridPosition], rng: random.Random = None
) -> GridPosition:
    """
    Propose a canonical cell for a new memory. Free cells in the center of the grid are preferred, the choice among
    them is uniformly random. The result is only a proposal, the caller has to claim it atomically.
    Args:
        configuration: The canonical mosaic configuration
        occupied: The canonical positions of all existing memories
        rng: The random generator to draw from (module level random if None)

    Returns: A free, non-transparent position

    Raises:
        MosaicFullError: If no free, non-transparent cell is left

    """
    candidates, center = get_free_positions(configuration, occupied)
    if not candidates:
        raise MosaicFullError("All cells of the mosaic have been filled")
    chooser = rng or random
    return chooser.choice(center if center else candidates)
