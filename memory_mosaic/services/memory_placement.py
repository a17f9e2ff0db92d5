import logging
from datetime import datetime, timezone
from typing import Dict, List, Set

from fastapi import HTTPException

from memory_mosaic.models.app_config import get_config
from memory_mosaic.models.grid_position import GridPosition
from memory_mosaic.models.memory import Memory, MemorySubmission
from memory_mosaic.models.mosaic_configuration import MosaicConfiguration
from memory_mosaic.models.render_mode import RenderMode
from memory_mosaic.services.abstract_persistence import PositionConflictError
from memory_mosaic.services.persistence import db
from memory_mosaic.utils.errors import PlacementConflictError
from memory_mosaic.utils.placement import allocate_position
from memory_mosaic.utils.position_resolution import resolve_all_positions
from memory_mosaic.utils.request_validation import generate_id


class MemoryPlacementService:
    """Service for placing memories on the mosaic grid and resolving their positions per render mode"""

    def submit_memory(self, submission: MemorySubmission) -> Memory:
        """
        Reserve a canonical cell for a submitted memory and store it.
        Allocated cells are proposals: if another submission claims the cell first, the allocation is repeated
        without that cell until max_claim_attempts is reached.
        Args:
            submission: The submitted memory, optionally with an explicit canonical position

        Returns: The stored memory

        Raises:
            HTTPException: The explicit position is outside of the grid or transparent
            MosaicFullError: No free cell is left
            PlacementConflictError: No cell could be reserved

        """
        configuration = db.read_mosaic_configuration(RenderMode.CANONICAL)
        if submission.position is not None:
            self._validate_explicit_position(submission.position, configuration)

        excluded: Set[GridPosition] = set()
        for attempt in range(1, get_config().max_claim_attempts + 1):
            position = submission.position
            if position is None:
                position = allocate_position(configuration, db.read_occupied_positions() | excluded)
            memory = Memory(
                id=generate_id(),
                canonical_position=position,
                photo_ref=submission.photo_ref,
                grid_photo_ref=submission.grid_photo_ref,
                additional_content=submission.additional_content,
                submitter_name=submission.submitter_name,
                created_at=datetime.now(timezone.utc),
            )
            try:
                db.insert_memory(memory)
                return memory
            except PositionConflictError:
                if submission.position is not None:
                    raise PlacementConflictError(
                        f"Cell ({position.row},{position.col}) is already occupied by another memory"
                    ) from None
                logging.warning(
                    "Cell (%s,%s) was claimed concurrently (attempt %s/%s)",
                    position.row,
                    position.col,
                    attempt,
                    get_config().max_claim_attempts,
                )
                excluded.add(position)
        raise PlacementConflictError("Could not reserve a spot in the mosaic, please retry")

    @staticmethod
    def _validate_explicit_position(position: GridPosition, configuration: MosaicConfiguration):
        if not configuration.contains(position):
            raise HTTPException(
                status_code=400,
                detail=f"Cell ({position.row},{position.col}) is outside of the "
                f"{configuration.grid_width}x{configuration.grid_height} grid.",
            )
        if configuration.is_transparent(position):
            raise HTTPException(
                status_code=400,
                detail=f"Cell ({position.row},{position.col}) is outside of the portrait and can not hold a memory.",
            )

    @staticmethod
    def resolve_positions(mode: RenderMode) -> Dict[str, GridPosition]:
        """
        Resolve where every memory is rendered in the given mode, based on one snapshot of the memory store
        Args:
            mode: The render mode

        Returns: The rendered position per memory id

        """
        configuration = db.read_mosaic_configuration(mode)
        memories = db.read_memories()
        return resolve_all_positions(memories, mode, configuration)

    @staticmethod
    def get_memory(memory_id: str) -> Memory:
        return db.read_memory(memory_id)

    @staticmethod
    def get_memory_at(position: GridPosition) -> Memory:
        return db.read_memory_at(position)

    @staticmethod
    def get_memory_list() -> List[Memory]:
        return db.read_memories()

    @staticmethod
    def delete_memory(memory_id: str):
        """Delete a memory and free its cell"""
        db.delete_memory(memory_id)
        db.commit()


placement_service = MemoryPlacementService()
