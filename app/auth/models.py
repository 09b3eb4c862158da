# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================

from pydantic import BaseModel
from uuid import UUID
from typing import Optional


class AuthUser(BaseModel):
    """
    Authenticated user extracted from a Supabase JWT.

    Only what the token carries; profile data lives in `profiles`.
    """
    id: UUID
    email: Optional[str] = None

    class Config:
        frozen = True  # Make immutable
