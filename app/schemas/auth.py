from pydantic import BaseModel
from typing import Optional, Literal


RoleType = Literal["admin", "agent"]


class TokenData(BaseModel):
    """Claims taken from a backend-issued access token."""

    agent_id: str
    email: Optional[str] = None
    role: RoleType = "agent"
