"""Authentication schemas."""
from pydantic import BaseModel


class TokenResponse(BaseModel):
    """Access token issued for a sign-in session."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
