import logging

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse

from memory_mosaic.models.grid_position import GridPosition
from memory_mosaic.models.memory import MemorySubmission
from memory_mosaic.models.render_mode import RenderMode
from memory_mosaic.services.memory_placement import placement_service
from memory_mosaic.services.mosaic_generation import generation_service
from memory_mosaic.utils.errors import MosaicFullError, PlacementConflictError
from memory_mosaic.utils.request_validation import validate_request_uuid

router = APIRouter()


@router.get(
    "/mosaic/configuration",
    name="get_mosaic_configuration",
    summary="Get the grid dimensions and the color of every cell of the mosaic for a render mode.",
)
async def get_mosaic_configuration(
    mode: RenderMode = Query(RenderMode.CANONICAL, description="The render mode of the grid")
) -> JSONResponse:
    try:
        configuration = generation_service.get_configuration(mode)
        return JSONResponse(content=configuration)
    except HTTPException:
        raise
    except Exception as exc:
        logging.error("", exc_info=True)
        raise HTTPException(status_code=500, detail="An unknown server error occurred") from exc


@router.get(
    "/mosaic/status",
    name="get_mosaic_status",
    summary="Get the number of memories as well as the number of free and transparent cells of the mosaic.",
)
async def get_mosaic_status() -> JSONResponse:
    try:
        return JSONResponse(content=generation_service.get_mosaic_status())
    except HTTPException:
        raise
    except Exception as exc:
        logging.error("", exc_info=True)
        raise HTTPException(status_code=500, detail="An unknown server error occurred") from exc


@router.get("/mosaic/memories", name="list_memories", summary="List all memories in the order of their creation.")
async def list_memories() -> JSONResponse:
    try:
        memories = placement_service.get_memory_list()
        return JSONResponse(content={"memories": [m.model_dump(mode="json") for m in memories]})
    except HTTPException:
        raise
    except Exception as exc:
        logging.error("", exc_info=True)
        raise HTTPException(status_code=500, detail="An unknown server error occurred") from exc


@router.get(
    "/mosaic/memories/positions",
    name="get_memory_positions",
    summary="Get the cell every memory is rendered in for a render mode. No two memories share a cell.",
)
async def get_memory_positions(
    mode: RenderMode = Query(RenderMode.CANONICAL, description="The render mode of the grid")
) -> JSONResponse:
    try:
        positions = placement_service.resolve_positions(mode)
        return JSONResponse(
            content={
                "mode": mode.value,
                "positions": {memory_id: p.model_dump() for memory_id, p in positions.items()},
            }
        )
    except HTTPException:
        raise
    except Exception as exc:
        logging.error("", exc_info=True)
        raise HTTPException(status_code=500, detail="An unknown server error occurred") from exc


@router.get("/mosaic/memory/{memory_id}", name="get_memory", summary="Get a single memory.")
async def get_memory(memory_id: str) -> JSONResponse:
    try:
        m_id = validate_request_uuid(memory_id, "memory")
        memory = placement_service.get_memory(m_id)
        return JSONResponse(content=memory.model_dump(mode="json"), headers={"memory_id": m_id})
    except HTTPException:
        raise
    except Exception as exc:
        logging.error("", exc_info=True)
        raise HTTPException(status_code=500, detail="An unknown server error occurred") from exc


@router.get(
    "/mosaic/cell",
    name="get_memory_at_cell",
    summary="Get the memory occupying a cell of the canonical grid.",
)
async def get_memory_at_cell(
    row: int = Query(..., ge=0, description="The row of the canonical cell"),
    col: int = Query(..., ge=0, description="The column of the canonical cell"),
) -> JSONResponse:
    try:
        memory = placement_service.get_memory_at(GridPosition(row=row, col=col))
        return JSONResponse(content=memory.model_dump(mode="json"), headers={"memory_id": memory.id})
    except HTTPException:
        raise
    except Exception as exc:
        logging.error("", exc_info=True)
        raise HTTPException(status_code=500, detail="An unknown server error occurred") from exc


@router.post(
    "/mosaic/memory",
    name="post_memory",
    summary="Add a memory to the mosaic. Without an explicit position a free cell (preferably in the center of the "
    "portrait) is reserved for it.",
)
async def post_memory(submission: MemorySubmission) -> JSONResponse:
    try:
        memory = placement_service.submit_memory(submission)
        return JSONResponse(content=memory.model_dump(mode="json"), headers={"memory_id": memory.id})
    except HTTPException:
        raise
    except MosaicFullError as exc:
        raise HTTPException(status_code=409, detail="The mosaic is full, no more memories can be added.") from exc
    except PlacementConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except Exception as exc:
        logging.error("", exc_info=True)
        raise HTTPException(status_code=500, detail="An unknown server error occurred") from exc
