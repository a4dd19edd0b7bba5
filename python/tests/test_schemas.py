"""Tests for the scope and request schemas."""

from uuid import uuid4

import pytest
from pydantic import ValidationError

from quill.schemas.accounts import DestroyAccountRequest
from quill.schemas.scope import Scope


class TestScope:
    """Tests for Scope."""

    def test_internal(self):
        scope = Scope.internal(request_id="req-1")
        assert scope.is_internal is True
        assert scope.actor_id is None
        assert scope.request_id == "req-1"
        assert scope.account_status is None

    def test_frozen(self):
        scope = Scope()
        with pytest.raises(ValidationError):
            scope.account_status = "locked"


class TestDestroyAccountRequest:
    """Tests for DestroyAccountRequest."""

    def test_parses_string_id(self):
        account_id = uuid4()
        request = DestroyAccountRequest(account_id=str(account_id), scope=Scope())
        assert request.account_id == account_id

    def test_rejects_bad_id(self):
        with pytest.raises(ValidationError):
            DestroyAccountRequest(account_id="not-a-uuid", scope=Scope())
