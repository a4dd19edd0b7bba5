"""Account lifecycle Pydantic schemas.

Contains the request models accepted by the account lifecycle workflows.
"""

from uuid import UUID

from pydantic import BaseModel, ConfigDict

from quill.schemas.scope import Scope


class DestroyAccountRequest(BaseModel):
    """Request to destroy an account and hand its content to a fallback author."""

    account_id: UUID
    scope: Scope

    model_config = ConfigDict(frozen=True)

