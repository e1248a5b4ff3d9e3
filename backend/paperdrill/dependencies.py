from datetime import datetime, timezone

from fastapi import Header, HTTPException


async def get_owner_id(x_owner_id: str = Header(default="")) -> str:
    """Owner of the request. Authentication happens upstream; the id is trusted."""
    owner_id = x_owner_id.strip()
    if not owner_id:
        raise HTTPException(status_code=401, detail="X-Owner-Id header required")
    return owner_id


def get_now() -> datetime:
    """The single wall-clock read; everything below receives ``now`` explicitly."""
    return datetime.now(timezone.utc)
