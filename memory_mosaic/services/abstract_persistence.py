from abc import ABC
from typing import List, Set

from memory_mosaic.models.grid_position import GridPosition
from memory_mosaic.models.memory import Memory
from memory_mosaic.models.mosaic_configuration import MosaicConfiguration
from memory_mosaic.models.render_mode import RenderMode


class PositionConflictError(Exception):
    """Raised by insert_memory if another memory already occupies the canonical position"""


class AbstractPersistenceService(ABC):
    def commit(self):
        raise NotImplementedError()

    def disconnect(self):
        raise NotImplementedError()

    def mosaic_configuration_exists(self, mode: RenderMode) -> bool:
        raise NotImplementedError()

    def upsert_mosaic_configuration(self, mode: RenderMode, configuration: MosaicConfiguration):
        raise NotImplementedError()

    def read_mosaic_configuration(self, mode: RenderMode) -> MosaicConfiguration:
        raise NotImplementedError()

    def delete_mosaic_configuration(self, mode: RenderMode):
        raise NotImplementedError()

    def memory_exists(self, memory_id: str) -> bool:
        raise NotImplementedError()

    def memory_count(self) -> int:
        raise NotImplementedError()

    def insert_memory(self, memory: Memory):
        """Atomically claim the memory's canonical position or raise PositionConflictError"""
        raise NotImplementedError()

    def read_memory(self, memory_id: str) -> Memory:
        raise NotImplementedError()

    def read_memory_at(self, position: GridPosition) -> Memory:
        raise NotImplementedError()

    def read_memories(self) -> List[Memory]:
        """All memories ordered by creation time, read as one consistent snapshot"""
        raise NotImplementedError()

    def read_occupied_positions(self) -> Set[GridPosition]:
        raise NotImplementedError()

    def delete_memory(self, memory_id: str):
        raise NotImplementedError()
