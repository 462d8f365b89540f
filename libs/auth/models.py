from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class AuthUser(BaseModel):
    """
    Represents an authenticated user decoded from a bearer token.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_id: str = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    role: str = "athlete"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class Credentials(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: Optional[str] = None


class Identity(BaseModel):
    """A signed-in identity as issued by the authentication provider."""

    user_id: str
    email: EmailStr
    role: str = "athlete"
    access_token: Optional[str] = None
