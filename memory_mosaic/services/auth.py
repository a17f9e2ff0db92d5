import jwt
from fastapi import HTTPException, Security
from fastapi.security import APIKeyHeader
from starlette.status import HTTP_403_FORBIDDEN

from memory_mosaic.models.app_config import get_config

API_KEY = APIKeyHeader(name="api_key", auto_error=False)
ADMIN_ID = "memory-mosaic-admin"


class AuthService:
    """Guards the maintenance endpoints (reference image upload, memory removal) with a JWT api key"""

    async def admin_auth(self, api_key: str = Security(API_KEY)):
        return await self._auth(api_key, ADMIN_ID)

    @staticmethod
    async def _auth(api_key_header: str, user_id: str) -> str:
        if not get_config().enable_auth:
            return ""
        if not api_key_header:
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="api_key header invalid or missing")
        try:
            decoded_token = jwt.decode(api_key_header, get_config().jwt_secret, algorithms=["HS256"])
        except jwt.InvalidTokenError as exc:
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="api_key header invalid or missing") from exc
        if decoded_token.get("id") != user_id:
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="api_key header invalid or missing")
        return api_key_header
