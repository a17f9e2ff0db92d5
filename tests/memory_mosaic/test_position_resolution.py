from datetime import datetime, timedelta, timezone

from memory_mosaic.models.cell_color import CellColorData
from memory_mosaic.models.grid_position import GridPosition
from memory_mosaic.models.memory import Memory
from memory_mosaic.models.mosaic_configuration import MosaicConfiguration
from memory_mosaic.models.render_mode import RenderMode
from memory_mosaic.utils.position_resolution import (
    resolve_all_positions,
    resolve_position,
    ring_positions,
    scale_position,
)

START_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_configuration(grid_width: int, grid_height: int, transparent=()) -> MosaicConfiguration:
    cells = tuple(
        CellColorData(
            position=GridPosition(row=r, col=c),
            color=(120, 120, 120),
            brightness=120,
            alpha=0.0 if (r, c) in transparent else 1.0,
        )
        for r in range(grid_height)
        for c in range(grid_width)
    )
    return MosaicConfiguration(
        reference_image_id="portrait", grid_width=grid_width, grid_height=grid_height, cells=cells
    )


def make_memories(positions):
    return [
        Memory(
            id=f"memory-{i}",
            canonical_position=GridPosition(row=row, col=col),
            created_at=START_TIME + timedelta(minutes=i),
        )
        for i, (row, col) in enumerate(positions)
    ]


def pos(row: int, col: int) -> GridPosition:
    return GridPosition(row=row, col=col)


def test_canonical_mode_keeps_position():
    config = make_configuration(20, 20, transparent={(10, 10)})
    used = {pos(10, 10)}
    assert resolve_position(pos(10, 10), RenderMode.CANONICAL, config, used) == pos(10, 10)


def test_scaled_candidate_is_used_if_valid():
    config = make_configuration(10, 10)
    used = set()
    assert resolve_position(pos(10, 10), RenderMode.COARSE, config, used) == pos(5, 5)
    assert pos(5, 5) in used


def test_scaling_truncates():
    assert scale_position(pos(11, 11), RenderMode.COARSE) == pos(5, 5)
    assert scale_position(pos(0, 1), RenderMode.COARSE) == pos(0, 0)
    assert scale_position(pos(7, 3), RenderMode.CANONICAL) == pos(7, 3)


def test_ring_order():
    assert list(ring_positions(pos(5, 5), 1)) == [
        (4, 4),
        (4, 5),
        (4, 6),
        (6, 4),
        (6, 5),
        (6, 6),
        (5, 4),
        (5, 6),
    ]
    ring = list(ring_positions(pos(5, 5), 3))
    assert len(ring) == 24
    assert len(set(ring)) == 24
    assert all(max(abs(r - 5), abs(c - 5)) == 3 for r, c in ring)


def test_spiral_search_follows_ring_order():
    config = make_configuration(10, 10, transparent={(4, 4)})
    used = {pos(5, 5)}
    # (4, 4) is transparent, so the second cell of the first ring wins
    assert resolve_position(pos(10, 10), RenderMode.COARSE, config, used) == pos(4, 5)
    assert resolve_position(pos(10, 10), RenderMode.COARSE, config, used) == pos(4, 6)
    assert resolve_position(pos(10, 10), RenderMode.COARSE, config, used) == pos(6, 4)


def test_spiral_search_moves_outward():
    ring_1 = {(r, c) for r in range(4, 7) for c in range(4, 7)}
    config = make_configuration(10, 10, transparent=ring_1 - {(5, 5)})
    used = {pos(5, 5)}
    assert resolve_position(pos(10, 10), RenderMode.COARSE, config, used) == pos(3, 3)


def test_candidate_outside_of_grid():
    config = make_configuration(10, 10)
    used = set()
    # (30, 30) scales to (15, 15), the closest ring entering the grid starts at (9, 9)
    assert resolve_position(pos(30, 30), RenderMode.COARSE, config, used) == pos(9, 9)


def test_saturated_grid_falls_back_to_scaled_candidate():
    config = make_configuration(3, 3, transparent={(0, 0)})
    used = {pos(r, c) for r in range(3) for c in range(3)}
    assert resolve_position(pos(2, 2), RenderMode.COARSE, config, used) == pos(1, 1)


def test_batch_resolution_is_collision_free():
    config = make_configuration(10, 10, transparent={(0, 0), (0, 1), (1, 0)})
    canonical = [(r, c) for r in range(0, 20, 2) for c in range(0, 6)]
    memories = make_memories(canonical)
    resolved = resolve_all_positions(memories, RenderMode.COARSE, config)
    assert set(resolved) == {m.id for m in memories}
    assert len(set(resolved.values())) == len(memories)
    for p in resolved.values():
        assert config.contains(p)
        assert not config.is_transparent(p)


def test_batch_resolution_is_deterministic():
    config = make_configuration(10, 8, transparent={(3, 3), (3, 4)})
    memories = make_memories([(6, 6), (7, 7), (6, 7), (7, 6), (6, 8), (0, 0), (15, 19)])
    first = resolve_all_positions(memories, RenderMode.COARSE, config)
    second = resolve_all_positions(memories, RenderMode.COARSE, config)
    assert first == second


def test_earlier_memory_wins_coarse_cell():
    config = make_configuration(10, 10)
    memories = make_memories([(10, 10), (11, 11)])
    resolved = resolve_all_positions(memories, RenderMode.COARSE, config)
    assert resolved["memory-0"] == pos(5, 5)
    assert resolved["memory-1"] == pos(4, 4)

    resolved = resolve_all_positions(list(reversed(memories)), RenderMode.COARSE, config)
    assert resolved["memory-1"] == pos(5, 5)
    assert resolved["memory-0"] == pos(4, 4)


def test_batch_resolution_canonical_mode():
    config = make_configuration(20, 20)
    memories = make_memories([(1, 2), (3, 4)])
    resolved = resolve_all_positions(memories, RenderMode.CANONICAL, config)
    assert resolved == {"memory-0": pos(1, 2), "memory-1": pos(3, 4)}


def test_batch_resolution_without_memories():
    assert resolve_all_positions([], RenderMode.COARSE, make_configuration(2, 2)) == {}
