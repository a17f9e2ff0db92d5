import logging
import math
from typing import Dict, Iterator, List, Optional, Set, Tuple

from memory_mosaic.models.grid_position import GridPosition
from memory_mosaic.models.memory import Memory
from memory_mosaic.models.mosaic_configuration import MosaicConfiguration
from memory_mosaic.models.render_mode import RenderMode


def scale_position(position: GridPosition, mode: RenderMode) -> GridPosition:
    # truncation biases towards the top-left of each coarse cell, kept so that existing mosaics render unchanged
    return GridPosition(row=math.floor(position.row * mode.scale), col=math.floor(position.col * mode.scale))


def ring_positions(center: GridPosition, radius: int) -> Iterator[Tuple[int, int]]:
    """
    Enumerate the (row, col) pairs at Chebyshev distance radius around center in a fixed order:
    top row, bottom row (both left to right), then left and right column (both top to bottom, without corners).
    Pairs may lie outside of the grid.
    """
    top, bottom = center.row - radius, center.row + radius
    left, right = center.col - radius, center.col + radius
    for col in range(left, right + 1):
        yield top, col
    for col in range(left, right + 1):
        yield bottom, col
    for row in range(top + 1, bottom):
        yield row, left
    for row in range(top + 1, bottom):
        yield row, right


def is_valid_position(
    row: int, col: int, configuration: MosaicConfiguration, used_positions: Set[GridPosition]
) -> bool:
    """A cell is valid if it is inside the grid, not transparent and not used during the current resolution pass"""
    if not (0 <= row < configuration.grid_height and 0 <= col < configuration.grid_width):
        return False
    position = GridPosition(row=row, col=col)
    return not configuration.is_transparent(position) and position not in used_positions


def find_nearest_valid_position(
    start: GridPosition, configuration: MosaicConfiguration, used_positions: Set[GridPosition]
) -> Optional[GridPosition]:
    """Spiral search outward from start (excluding start itself) for the closest valid cell"""
    max_radius = max(configuration.grid_width, configuration.grid_height)
    for radius in range(1, max_radius + 1):
        for row, col in ring_positions(start, radius):
            if is_valid_position(row, col, configuration, used_positions):
                return GridPosition(row=row, col=col)
    return None


def resolve_position(
    position: GridPosition,
    mode: RenderMode,
    configuration: MosaicConfiguration,
    used_positions: Set[GridPosition],
) -> GridPosition:
    """
    Translate a canonical position into a cell of the given render mode and claim it in used_positions.
    Never fails: if no valid cell is left, the scaled position is returned even though it may collide.
    Args:
        position: The canonical position of a memory
        mode: The render mode to resolve for
        configuration: The mosaic configuration of the render mode (not the canonical one)
        used_positions: Cells already claimed in this resolution pass, updated in place

    Returns: The resolved position

    """
    if mode.is_canonical:
        return position

    scaled = scale_position(position, mode)
    if is_valid_position(scaled.row, scaled.col, configuration, used_positions):
        resolved = scaled
    else:
        resolved = find_nearest_valid_position(scaled, configuration, used_positions)
        if resolved is None:
            logging.warning(
                "No free cell left in %s mode, rendering canonical position (%s,%s) at (%s,%s)",
                mode.value,
                position.row,
                position.col,
                scaled.row,
                scaled.col,
            )
            resolved = scaled
    used_positions.add(resolved)
    return resolved


def resolve_all_positions(
    memories: List[Memory], mode: RenderMode, configuration: MosaicConfiguration
) -> Dict[str, GridPosition]:
    """
    Resolve the positions of all memories for one render mode. Memories are processed in the given order
    (which has to be stable, e.g. creation time), so the same input always produces the same mapping.
    Args:
        memories: A consistent snapshot of all memories
        mode: The render mode to resolve for
        configuration: The mosaic configuration of the render mode

    Returns: The resolved position of each memory, keyed by memory id

    """
    used_positions: Set[GridPosition] = set()
    resolved = {}
    for memory in memories:
        resolved[memory.id] = resolve_position(memory.canonical_position, mode, configuration, used_positions)
    return resolved
