from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    """Model holding the app configuration"""

    model_config = SettingsConfigDict(env_file="config/.env")

    # api config
    enable_documentation: bool = False
    cors_origins: List[str] = ["*"]

    # auth config
    enable_auth: bool = False
    jwt_secret: str = ""

    # db config
    sql_lite_path: str = ""

    # mosaic config
    target_cells: int = 1200
    reference_image_max_size: int = 2048

    # placement config
    max_claim_attempts: int = 3


@lru_cache()
def get_config():
    return AppConfig()
