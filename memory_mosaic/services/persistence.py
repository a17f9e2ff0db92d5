import io
import os
import sqlite3
from datetime import datetime, timezone
from typing import List, Set

import numpy as np
from fastapi import HTTPException

from memory_mosaic.models.app_config import get_config
from memory_mosaic.models.cell_color import CellColorData
from memory_mosaic.models.grid_position import GridPosition
from memory_mosaic.models.memory import AdditionalContent, Memory
from memory_mosaic.models.mosaic_configuration import MosaicConfiguration
from memory_mosaic.models.render_mode import RenderMode
from memory_mosaic.services.abstract_persistence import AbstractPersistenceService, PositionConflictError

MOSAIC_CONFIGURATION_TABLE = "mosaic_configurations"
MEMORY_TABLE = "memories"

MEMORY_COLUMNS = [
    "id",
    "row_idx",
    "col_idx",
    "photo_ref",
    "grid_photo_ref",
    "content_kind",
    "content_payload",
    "submitter_name",
    "created_at",
]


def _cells_to_array(configuration: MosaicConfiguration) -> np.ndarray:
    """Pack the cell table into a (rows, cols, 5) array holding r, g, b, brightness, alpha"""
    array = np.zeros((configuration.grid_height, configuration.grid_width, 5), dtype=np.float64)
    for cell in configuration.cells:
        array[cell.position.row, cell.position.col] = (*cell.color, cell.brightness, cell.alpha)
    return array


def _array_to_cells(array: np.ndarray) -> List[CellColorData]:
    cells = []
    for row in range(array.shape[0]):
        for col in range(array.shape[1]):
            r, g, b, brightness, alpha = array[row, col]
            cells.append(
                CellColorData(
                    position=GridPosition(row=row, col=col),
                    color=(int(r), int(g), int(b)),
                    brightness=int(brightness),
                    alpha=float(alpha),
                )
            )
    return cells


def _row_to_memory(row: tuple) -> Memory:
    additional_content = None
    if row[5]:
        additional_content = AdditionalContent(kind=row[5], payload=row[6])
    return Memory(
        id=row[0],
        canonical_position=GridPosition(row=row[1], col=row[2]),
        photo_ref=row[3],
        grid_photo_ref=row[4],
        additional_content=additional_content,
        submitter_name=row[7],
        created_at=datetime.fromisoformat(row[8]),
    )


class SQLitePersistenceService(AbstractPersistenceService):
    """
    A simple service for interacting with a raw sqlite3 db backend.
    The memory table holds a unique constraint on the canonical position, inserting a memory therefore
    claims its cell atomically.
    """

    def __init__(self, path: str):
        if not os.path.isdir(path):
            raise ValueError(f"SQL_LITE_PATH {path} is not a directory!")

        self._path = os.path.join(path, "mosaic.db")
        self._connection = None

    def connect(self):
        if not self._connection:
            is_new = not os.path.isfile(self._path)
            # requests are served from the event loop and test clients from other threads
            self._connection = sqlite3.connect(
                self._path, detect_types=sqlite3.PARSE_DECLTYPES, check_same_thread=False
            )
            if is_new:
                self._init_db()
        return self._connection

    def commit(self):
        if self._connection:
            self._connection.commit()

    def disconnect(self):
        if self._connection:
            self._connection.close()
            self._connection = None

    def mosaic_configuration_exists(self, mode: RenderMode) -> bool:
        con = self.connect()
        cur = con.cursor()
        cur.execute(
            f"""SELECT EXISTS(SELECT 1 FROM {MOSAIC_CONFIGURATION_TABLE} WHERE mode=?);""", (mode.value,)
        )
        return bool(cur.fetchone()[0])

    def upsert_mosaic_configuration(self, mode: RenderMode, configuration: MosaicConfiguration):
        con = self.connect()
        cur = con.cursor()
        cur.execute(
            f"""INSERT OR REPLACE INTO {MOSAIC_CONFIGURATION_TABLE} (mode, reference_image_id, grid_width,
            grid_height, generated_at, cell_array) values (?, ?, ?, ?, ?, ?)""",
            (
                mode.value,
                configuration.reference_image_id,
                configuration.grid_width,
                configuration.grid_height,
                configuration.generated_at.isoformat(),
                _cells_to_array(configuration),
            ),
        )

    def read_mosaic_configuration(self, mode: RenderMode) -> MosaicConfiguration:
        con = self.connect()
        cur = con.cursor()
        cur.execute(
            f"""SELECT reference_image_id, grid_width, grid_height, generated_at, cell_array
            FROM {MOSAIC_CONFIGURATION_TABLE} WHERE mode=?;""",
            (mode.value,),
        )
        rows = cur.fetchall()
        if len(rows) == 0:
            raise HTTPException(status_code=404, detail=f"No mosaic configuration exists for mode {mode.value}.")
        row = rows[0]
        return MosaicConfiguration(
            reference_image_id=row[0],
            grid_width=row[1],
            grid_height=row[2],
            generated_at=datetime.fromisoformat(row[3]),
            cells=tuple(_array_to_cells(row[4])),
        )

    def delete_mosaic_configuration(self, mode: RenderMode):
        con = self.connect()
        cur = con.cursor()
        cur.execute(f"""DELETE FROM {MOSAIC_CONFIGURATION_TABLE} WHERE mode=?;""", (mode.value,))

    def memory_exists(self, memory_id: str) -> bool:
        con = self.connect()
        cur = con.cursor()
        cur.execute(f"""SELECT EXISTS(SELECT 1 FROM {MEMORY_TABLE} WHERE id=?);""", (memory_id,))
        return bool(cur.fetchone()[0])

    def memory_count(self) -> int:
        con = self.connect()
        cur = con.cursor()
        cur.execute(f"""SELECT COUNT(*) FROM {MEMORY_TABLE};""")
        return cur.fetchone()[0]

    def insert_memory(self, memory: Memory):
        con = self.connect()
        content = memory.additional_content
        try:
            con.execute(
                f"""INSERT INTO {MEMORY_TABLE} ({', '.join(MEMORY_COLUMNS)}) values (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    memory.id,
                    memory.canonical_position.row,
                    memory.canonical_position.col,
                    memory.photo_ref,
                    memory.grid_photo_ref,
                    content.kind.value if content else None,
                    content.payload if content else None,
                    memory.submitter_name,
                    memory.created_at.astimezone(timezone.utc).isoformat(),
                ),
            )
            con.commit()
        except sqlite3.IntegrityError as exc:
            con.rollback()
            raise PositionConflictError(
                f"Cell ({memory.canonical_position.row},{memory.canonical_position.col}) is already occupied"
            ) from exc

    def read_memory(self, memory_id: str) -> Memory:
        con = self.connect()
        cur = con.cursor()
        cur.execute(f"""SELECT {', '.join(MEMORY_COLUMNS)} FROM {MEMORY_TABLE} WHERE id=?;""", (memory_id,))
        rows = cur.fetchall()
        if len(rows) == 0:
            raise HTTPException(status_code=404, detail=f"Memory {memory_id} does not exist.")
        return _row_to_memory(rows[0])

    def read_memory_at(self, position: GridPosition) -> Memory:
        con = self.connect()
        cur = con.cursor()
        cur.execute(
            f"""SELECT {', '.join(MEMORY_COLUMNS)} FROM {MEMORY_TABLE} WHERE row_idx=? AND col_idx=?;""",
            (position.row, position.col),
        )
        rows = cur.fetchall()
        if len(rows) == 0:
            raise HTTPException(
                status_code=404, detail=f"No memory exists at cell ({position.row},{position.col})."
            )
        return _row_to_memory(rows[0])

    def read_memories(self) -> List[Memory]:
        con = self.connect()
        cur = con.cursor()
        cur.execute(f"""SELECT {', '.join(MEMORY_COLUMNS)} FROM {MEMORY_TABLE} ORDER BY created_at, rowid;""")
        return [_row_to_memory(row) for row in cur.fetchall()]

    def read_occupied_positions(self) -> Set[GridPosition]:
        con = self.connect()
        cur = con.cursor()
        cur.execute(f"""SELECT row_idx, col_idx FROM {MEMORY_TABLE};""")
        return {GridPosition(row=row, col=col) for row, col in cur.fetchall()}

    def delete_memory(self, memory_id: str):
        con = self.connect()
        cur = con.cursor()
        cur.execute(f"""DELETE FROM {MEMORY_TABLE} WHERE id=?;""", (memory_id,))
        if cur.rowcount == 0:
            raise HTTPException(status_code=404, detail=f"Memory {memory_id} does not exist.")

    def _init_db(self):
        cur = self._connection.cursor()
        cur.execute(
            f"""CREATE TABLE {MOSAIC_CONFIGURATION_TABLE}
                           (mode TEXT PRIMARY KEY,
                            reference_image_id TEXT,
                            grid_width INTEGER,
                            grid_height INTEGER,
                            generated_at TEXT,
                            cell_array array)"""
        )

        cur.execute(
            f"""CREATE TABLE {MEMORY_TABLE}
                           (id TEXT PRIMARY KEY,
                            row_idx INTEGER,
                            col_idx INTEGER,
                            photo_ref TEXT,
                            grid_photo_ref TEXT,
                            content_kind TEXT,
                            content_payload TEXT,
                            submitter_name TEXT,
                            created_at TEXT,
                            UNIQUE (row_idx, col_idx))"""
        )
        self.commit()


def _write_np_array(array):
    """
    Serialize np array
    """
    byte_arr = io.BytesIO()
    np.save(byte_arr, array)
    byte_arr.seek(0)
    return sqlite3.Binary(byte_arr.read())


def _read_np_array(blob):
    """
    Deserialize np array
    """
    byte_arr = io.BytesIO(blob)
    byte_arr.seek(0)
    return np.load(byte_arr)


# register serialization/deserialization for np arrays
sqlite3.register_adapter(np.ndarray, _write_np_array)
sqlite3.register_converter("array", _read_np_array)

# initialize SQLite Service
db = SQLitePersistenceService(get_config().sql_lite_path)
