import logging
from typing import Dict

from fastapi import HTTPException

from memory_mosaic.models.app_config import get_config
from memory_mosaic.models.mosaic_configuration import MosaicConfiguration
from memory_mosaic.models.render_mode import RenderMode
from memory_mosaic.services.persistence import db
from memory_mosaic.utils.image_processing import build_mosaic_configurations, load_reference_pixels
from memory_mosaic.utils.placement import get_free_positions


class MosaicGenerationService:
    """Service for creation and retrieval of mosaic configurations"""

    @staticmethod
    def create_configurations(
        image_bytes: bytes, reference_image_id: str, target_cells: int
    ) -> Dict[RenderMode, MosaicConfiguration]:
        """
        Sample a reference image into one mosaic configuration per render mode and store them, replacing the
        previous configurations.
        Args:
            image_bytes: The binary reference image
            reference_image_id: The identifier of the reference image
            target_cells: The desired number of cells of the canonical grid

        Returns: The new configuration per render mode

        Raises:
            HTTPException: Memories exist and the canonical grid size would change

        """
        pixels = load_reference_pixels(image_bytes, get_config().reference_image_max_size)
        configurations = build_mosaic_configurations(pixels, reference_image_id, target_cells)

        # existing memories keep their canonical position, so the canonical grid must not change under them
        canonical = configurations[RenderMode.CANONICAL]
        if db.memory_count() > 0 and db.mosaic_configuration_exists(RenderMode.CANONICAL):
            current = db.read_mosaic_configuration(RenderMode.CANONICAL)
            if (current.grid_width, current.grid_height) != (canonical.grid_width, canonical.grid_height):
                raise HTTPException(
                    status_code=409,
                    detail=f"The mosaic already holds memories on a {current.grid_width}x{current.grid_height} grid, "
                    f"the new reference image would produce a {canonical.grid_width}x{canonical.grid_height} grid.",
                )
            uncovered = sorted(
                (p.row, p.col) for p in db.read_occupied_positions() if canonical.is_transparent(p)
            )
            if uncovered:
                raise HTTPException(
                    status_code=409,
                    detail=f"The new reference image is transparent at {len(uncovered)} cell(s) holding a memory, "
                    f"e.g. ({uncovered[0][0]},{uncovered[0][1]}).",
                )

        for mode, configuration in configurations.items():
            db.upsert_mosaic_configuration(mode, configuration)
        db.commit()
        logging.info(
            "Stored mosaic configurations for '%s' (%sx%s canonical cells)",
            reference_image_id,
            canonical.grid_width,
            canonical.grid_height,
        )
        return configurations

    @staticmethod
    def get_configuration(mode: RenderMode) -> dict:
        return db.read_mosaic_configuration(mode).to_serializable()

    @staticmethod
    def get_mosaic_status() -> dict:
        """
        Summarize the filling state of the canonical grid
        Returns: A dict with grid size, number of memories and number of free/transparent cells
        """
        configuration = db.read_mosaic_configuration(RenderMode.CANONICAL)
        occupied = db.read_occupied_positions()
        free_cells, free_center_cells = get_free_positions(configuration, occupied)
        total_cells = configuration.grid_width * configuration.grid_height
        return {
            "reference_image_id": configuration.reference_image_id,
            "grid_width": configuration.grid_width,
            "grid_height": configuration.grid_height,
            "total_cells": total_cells,
            "transparent_cells": total_cells - len(configuration.opaque_positions()),
            "memories": len(occupied),
            "free_cells": len(free_cells),
            "free_center_cells": len(free_center_cells),
            "full": len(free_cells) == 0,
        }


generation_service = MosaicGenerationService()
