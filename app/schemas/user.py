from pydantic import BaseModel
from typing import Optional


class CurrentUserResponse(BaseModel):
    id: str
    username: Optional[str] = None
    email: Optional[str] = None
