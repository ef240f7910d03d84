import uuid
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class AuthUser(BaseModel):
    """
    Represents an authenticated user from a bearer token.
    """

    user_id: str = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    role: str = "authenticated"

    @property
    def uuid(self) -> uuid.UUID:
        """Subject as a UUID; buyers and admins are keyed by UUID."""
        return uuid.UUID(self.user_id)
