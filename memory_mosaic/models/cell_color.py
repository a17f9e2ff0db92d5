import string
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from memory_mosaic.models.grid_position import GridPosition

# cells below this alpha lie outside the portrait subject and never receive a memory
TRANSPARENCY_THRESHOLD = 0.1


def rgb2hex(color: Tuple[int, int, int]) -> str:
    return "#{:02x}{:02x}{:02x}".format(*color)


def hex2rgb(hex_color: str) -> Tuple[int, int, int]:
    value = hex_color.strip()
    if len(value) != 7 or value[0] != "#" or not all(c in string.hexdigits for c in value[1:]):
        raise ValueError(f"Color {hex_color} is not of format #RRGGBB")
    return int(value[1:3], 16), int(value[3:5], 16), int(value[5:7], 16)


class CellColorData(BaseModel):
    """Color information of one cell of a mosaic grid, sampled from the reference image"""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    position: GridPosition
    color: Tuple[int, int, int]
    brightness: int = Field(ge=0, le=255)
    alpha: float = Field(ge=0, le=1)

    @field_validator("color", mode="before")
    @classmethod
    def parse_color(cls, value):
        if isinstance(value, str):
            return hex2rgb(value)
        return value

    @field_validator("color")
    @classmethod
    def check_color_range(cls, value: Tuple[int, int, int]) -> Tuple[int, int, int]:
        if any(channel < 0 or channel > 255 for channel in value):
            raise ValueError(f"Color channels {value} have to be within [0, 255]")
        return value

    @field_serializer("color")
    def serialize_color(self, color: Tuple[int, int, int]) -> str:
        return rgb2hex(color)

    @property
    def hex_color(self) -> str:
        return rgb2hex(self.color)

    @property
    def is_transparent(self) -> bool:
        return self.alpha < TRANSPARENCY_THRESHOLD
