"""Execution scope schema.

A Scope travels with every store call a workflow makes. The calling layer
(HTTP handler, admin task) builds it once from the authenticated identity.
"""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class Scope(BaseModel):
    """Caller identity and permission data.

    Attributes:
        actor_id: Account performing the operation. None for internal jobs.
        is_internal: True when the operation runs on behalf of the system.
        request_id: Correlation ID for logs.
        account_status: Status filter for bulk account lookups. When None,
            reset_all_passwords covers every status (STATUS_ALL) and
            find_accounts falls back to ACTIVE_STATES.
    """

    actor_id: UUID | None = None
    is_internal: bool = False
    request_id: str | None = None
    account_status: str | None = Field(default=None)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def internal(cls, request_id: str | None = None) -> "Scope":
        """Scope for system-initiated operations."""
        return cls(is_internal=True, request_id=request_id)
