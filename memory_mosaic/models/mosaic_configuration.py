from datetime import datetime, timezone
from typing import Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from memory_mosaic.models.cell_color import CellColorData
from memory_mosaic.models.grid_position import GridPosition


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MosaicConfiguration(BaseModel):
    """
    Immutable snapshot of a mosaic grid: its dimensions, the reference image it was sampled from and the color
    of every cell (in row-major order). Serializes (by alias) to the cached configuration format.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    reference_image_id: str
    grid_width: int = Field(gt=0)
    grid_height: int = Field(gt=0)
    cells: Tuple[CellColorData, ...]
    generated_at: datetime = Field(default_factory=_now)

    @model_validator(mode="after")
    def check_cell_coverage(self) -> "MosaicConfiguration":
        expected = self.grid_width * self.grid_height
        if len(self.cells) != expected:
            raise ValueError(
                f"A {self.grid_width}x{self.grid_height} grid needs {expected} cells, got {len(self.cells)}"
            )
        for idx, cell in enumerate(self.cells):
            row, col = divmod(idx, self.grid_width)
            if cell.position.row != row or cell.position.col != col:
                raise ValueError(
                    f"Cell {idx} has position ({cell.position.row},{cell.position.col}), "
                    f"expected ({row},{col}) in row-major order"
                )
        return self

    def contains(self, position: GridPosition) -> bool:
        return 0 <= position.row < self.grid_height and 0 <= position.col < self.grid_width

    def cell_at(self, position: GridPosition) -> Optional[CellColorData]:
        if not self.contains(position):
            return None
        return self.cells[position.row * self.grid_width + position.col]

    def is_transparent(self, position: GridPosition) -> bool:
        cell = self.cell_at(position)
        return cell is None or cell.is_transparent

    def opaque_positions(self) -> Set[GridPosition]:
        return {cell.position for cell in self.cells if not cell.is_transparent}

    def to_serializable(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
