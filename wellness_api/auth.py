from fastapi import Request

from .config import get_settings
from .errors import Unauthorized


async def current_user(request: Request) -> str:
    """Identity supplied by the upstream auth layer; trusted as-is."""
    header = get_settings().USER_HEADER
    user_id = (request.headers.get(header) or "").strip()
    if not user_id:
        raise Unauthorized(f"Missing {header} header")
    return user_id
