"""Tests for account lookups and removal.

Verifies:
- Default lookups match active and inactive accounts only
- STATUS_ALL matches locked accounts too
- The scope's status filter is honoured
- destroy_account_row() removes sessions and refuses while content remains
"""

from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from quill.db.models import STATUS_ALL, Account, AccountSession, AccountStatus
from quill.db.session import with_transaction
from quill.errors import ApiErrorCode, NotFoundError
from quill.schemas.scope import Scope
from quill.services.accounts import (
    destroy_account_row,
    find_accounts,
    get_account,
    get_owner,
    lock_account,
)
from tests.factories import (
    create_test_account,
    create_test_api_key,
    create_test_post,
    create_test_session,
)


@pytest.fixture
def accounts(db_session) -> dict[str, Account]:
    return {
        status.value: create_test_account(db_session, slug=status.value, status=status.value)
        for status in AccountStatus
    }


class TestFindAccounts:
    """Tests for find_accounts() status filtering."""

    def test_default_skips_locked(self, db_session, scope, accounts):
        found = with_transaction(db_session, scope, find_accounts)

        assert {a.slug for a in found} == {"active", "inactive"}

    def test_status_all(self, db_session, scope, accounts):
        found = with_transaction(db_session, scope, lambda tx: find_accounts(tx, STATUS_ALL))

        assert {a.slug for a in found} == {"active", "inactive", "locked"}

    def test_single_status(self, db_session, scope, accounts):
        found = with_transaction(db_session, scope, lambda tx: find_accounts(tx, "locked"))

        assert [a.slug for a in found] == ["locked"]

    def test_status_list(self, db_session, scope, accounts):
        found = with_transaction(
            db_session, scope, lambda tx: find_accounts(tx, ["locked", "active"])
        )

        assert {a.slug for a in found} == {"active", "locked"}

    def test_scope_filter(self, db_session, accounts):
        scope = Scope(account_status="inactive")

        found = with_transaction(db_session, scope, find_accounts)

        assert [a.slug for a in found] == ["inactive"]


class TestGetAccount:
    """Tests for get_account()."""

    def test_locked_hidden_by_default(self, db_session, scope, accounts):
        locked_id = accounts["locked"].id

        with pytest.raises(NotFoundError) as exc_info:
            with_transaction(db_session, scope, lambda tx: get_account(tx, locked_id))

        assert exc_info.value.code is ApiErrorCode.E_USER_NOT_FOUND

    def test_locked_found_with_status_all(self, db_session, scope, accounts):
        locked_id = accounts["locked"].id

        found = with_transaction(
            db_session, scope, lambda tx: get_account(tx, locked_id, status=STATUS_ALL)
        )

        assert found.id == locked_id

    def test_get_owner(self, db_session, scope, owner, accounts):
        found = with_transaction(db_session, scope, get_owner)

        assert found.id == owner.id


class TestLockAccount:
    """Tests for lock_account()."""

    def test_locks(self, db_session, scope, direct_db):
        account = create_test_account(db_session)

        with_transaction(db_session, scope, lambda tx: lock_account(tx, account))

        with direct_db.session() as s:
            assert s.get(Account, account.id).status == AccountStatus.locked.value


class TestDestroyAccountRow:
    """Tests for destroy_account_row()."""

    def test_removes_account_and_sessions(self, db_session, scope, direct_db):
        account = create_test_account(db_session, status=AccountStatus.locked.value)
        create_test_session(db_session, account)
        create_test_session(db_session, account)

        with_transaction(db_session, scope, lambda tx: destroy_account_row(tx, account.id))

        assert direct_db.count(Account, Account.id == account.id) == 0
        assert direct_db.count(AccountSession) == 0

    def test_unknown_account(self, db_session, scope):
        with pytest.raises(NotFoundError):
            with_transaction(db_session, scope, lambda tx: destroy_account_row(tx, uuid4()))

    def test_refused_while_authoring_posts(self, db_session, scope, direct_db):
        account = create_test_account(db_session)
        create_test_post(db_session, authors=[account])

        with pytest.raises(IntegrityError):
            with_transaction(db_session, scope, lambda tx: destroy_account_row(tx, account.id))

        assert direct_db.count(Account, Account.id == account.id) == 1

    def test_refused_while_owning_api_keys(self, db_session, scope, direct_db):
        account = create_test_account(db_session)
        create_test_api_key(db_session, account)

        with pytest.raises(IntegrityError):
            with_transaction(db_session, scope, lambda tx: destroy_account_row(tx, account.id))

        assert direct_db.count(Account, Account.id == account.id) == 1
