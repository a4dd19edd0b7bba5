"""Pydantic schemas shared by the service layer and its callers."""

from quill.schemas.accounts import DestroyAccountRequest
from quill.schemas.scope import Scope

__all__ = [
    "DestroyAccountRequest",
    "Scope",
]
