from pydantic import BaseModel, ConfigDict, Field


class GridPosition(BaseModel):
    """A single cell of one specific grid resolution (not portable across render modes)"""

    model_config = ConfigDict(frozen=True)

    row: int = Field(ge=0)
    col: int = Field(ge=0)
