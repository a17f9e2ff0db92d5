""" Main Server Script"""

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware import Middleware
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from memory_mosaic.api.api import api
from memory_mosaic.models.app_config import get_config
from memory_mosaic.services.persistence import db
from memory_mosaic.utils.version import version


# Check and display important api settings
def check_config() -> Optional[str]:
    documentation_url = None
    if get_config().enable_documentation:
        documentation_url = "/documentation"
        print("Documentation endpoint: ENABLED")
    else:
        print("Documentation endpoint: DISABLED")

    if get_config().enable_auth:
        if not get_config().jwt_secret:
            raise ValueError("Please set JWT_SECRET via '.env' file or environment variable!")
        print("Authentication for admin endpoints: ENABLED")
    else:
        print("Authentication for admin endpoints: DISABLED")

    if not get_config().sql_lite_path:
        raise ValueError("Please set SQL_LITE_PATH via '.env' file or environment variable!")
    if get_config().max_claim_attempts < 1:
        raise ValueError("MAX_CLAIM_ATTEMPTS has to be at least 1!")
    print(f"Target number of mosaic cells: {get_config().target_cells}")
    return documentation_url


docs_url = check_config()


@asynccontextmanager
async def lifespan(_: FastAPI):
    print(f"Running memory-mosaic service (v{version()})...")
    db.connect()
    yield
    print("Stopping memory-mosaic service...")
    db.disconnect()


# setup CORS middleware
middleware = [
    Middleware(
        CORSMiddleware,
        allow_origins=get_config().cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["memory_id"],
    )
]

# setup api server
app = FastAPI(
    title="Memory Mosaic API",
    version=version(),
    middleware=middleware,
    docs_url=docs_url,
    redoc_url=None,
    lifespan=lifespan,
)
app.include_router(router=api)
Instrumentator().instrument(app).expose(app, include_in_schema=False)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8111, workers=1)
