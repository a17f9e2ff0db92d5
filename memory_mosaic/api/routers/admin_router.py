import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.openapi.models import APIKey
from fastapi.responses import JSONResponse

from memory_mosaic.models.app_config import get_config
from memory_mosaic.models.render_mode import RenderMode
from memory_mosaic.services.auth import AuthService
from memory_mosaic.services.memory_placement import placement_service
from memory_mosaic.services.mosaic_generation import generation_service
from memory_mosaic.utils.errors import DegenerateGridError, ImageLoadError, InvalidGridError
from memory_mosaic.utils.request_validation import validate_request_uuid

router = APIRouter()
auth_service = AuthService()


@router.post(
    "/mosaic/configuration",
    name="post_mosaic_configuration",
    summary="Sample an uploaded reference portrait into the mosaic grid of every render mode. Replaces the current "
    "configuration.",
)
async def post_mosaic_configuration(
    file: UploadFile = File(
        ..., description="The reference portrait. Transparent pixels are excluded from memory placement."
    ),
    reference_image_id: str = Form(..., min_length=1, description="An identifier of the reference portrait."),
    target_cells: Optional[int] = Form(
        None,
        ge=1,
        le=20000,
        description="The approximate number of cells of the canonical grid. The actual number may differ since the "
        "grid keeps the aspect ratio of the portrait. Defaults to the TARGET_CELLS setting.",
    ),
    key: APIKey = Depends(auth_service.admin_auth),
) -> JSONResponse:
    # pylint: disable=unused-argument

    image_bytes = await file.read()
    try:
        configurations = generation_service.create_configurations(
            image_bytes, reference_image_id.strip(), target_cells or get_config().target_cells
        )
        canonical = configurations[RenderMode.CANONICAL]
        return JSONResponse(
            content={
                "msg": "Mosaic configuration created!",
                "grid_width": canonical.grid_width,
                "grid_height": canonical.grid_height,
            }
        )
    except HTTPException:
        raise
    except (ImageLoadError, InvalidGridError, DegenerateGridError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logging.error("", exc_info=True)
        raise HTTPException(status_code=500, detail="An unknown server error occurred") from exc


@router.delete(
    "/mosaic/memory/{memory_id}",
    name="delete_memory",
    summary="Remove a memory from the mosaic. Its cell becomes free again.",
)
async def delete_memory(memory_id: str, key: APIKey = Depends(auth_service.admin_auth)) -> JSONResponse:
    # pylint: disable=unused-argument
    try:
        m_id = validate_request_uuid(memory_id, "memory")
        placement_service.delete_memory(m_id)
        return JSONResponse(content={"msg": "Memory deleted!"}, headers={"memory_id": m_id})
    except HTTPException:
        raise
    except Exception as exc:
        logging.error("", exc_info=True)
        raise HTTPException(status_code=500, detail="An unknown server error occurred") from exc
