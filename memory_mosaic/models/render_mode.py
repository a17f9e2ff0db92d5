from enum import Enum
from typing import Tuple


class RenderMode(str, Enum):
    """The resolutions a mosaic can be rendered in. Each mode scales the canonical grid by a fixed factor."""

    CANONICAL = "canonical"
    COARSE = "coarse"

    @property
    def scale(self) -> float:
        return MODE_SCALE_FACTORS[self]

    @property
    def is_canonical(self) -> bool:
        return self.scale == 1.0

    def grid_size(self, canonical_width: int, canonical_height: int) -> Tuple[int, int]:
        """The (width, height) of this mode's grid for a canonical grid of the given size"""
        return int(canonical_width * self.scale), int(canonical_height * self.scale)


MODE_SCALE_FACTORS = {
    RenderMode.CANONICAL: 1.0,
    RenderMode.COARSE: 0.5,
}
