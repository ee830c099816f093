"""
Unit tests for AccountService: login with legacy credential upgrade, admin
login, profile updates and account deletion.
"""

from unittest.mock import Mock
from uuid import uuid4

import pytest

from src.adapters.repository.memory import InMemoryIdentityStore
from src.domain.accounts import AccountService
from src.domain.credentials import hash_password, is_legacy, verify_password
from src.domain.exceptions import (
    AdminInactive,
    EmailTaken,
    InvalidCredentials,
    UserNotFound,
    UsernameTaken,
)
from src.domain.models import User
from tests.support import TEST_BCRYPT_COST


def create_user(store: InMemoryIdentityStore, username: str, email: str, password: str) -> User:
    with store.unit_of_work() as session:
        return session.create_user(username, email, password)


def stored_password(store: InMemoryIdentityStore, user_id: int) -> str:
    with store.unit_of_work() as session:
        return session.find_user_by_id(user_id).password


class TestLogin:
    def test_hashed_credential(self, account_service: AccountService, store: InMemoryIdentityStore) -> None:
        created = create_user(store, "alice", "alice@example.com", hash_password("password123", rounds=TEST_BCRYPT_COST))

        user = account_service.login("Alice@Example.com", "password123")

        assert user.id == created.id
        assert stored_password(store, created.id) == created.password

    def test_wrong_password(self, account_service: AccountService, store: InMemoryIdentityStore) -> None:
        create_user(store, "alice", "alice@example.com", hash_password("password123", rounds=TEST_BCRYPT_COST))

        with pytest.raises(InvalidCredentials):
            account_service.login("alice@example.com", "wrong")

    def test_unknown_email(self, account_service: AccountService) -> None:
        with pytest.raises(InvalidCredentials):
            account_service.login("ghost@example.com", "password123")

    def test_legacy_credential_upgraded_on_success(
        self, account_service: AccountService, store: InMemoryIdentityStore
    ) -> None:
        created = create_user(store, "legacy", "legacy@example.com", "secret1")

        user = account_service.login("legacy@example.com", "secret1")

        password = stored_password(store, created.id)
        assert not is_legacy(password)
        assert password != "secret1"
        assert user.password == password

        # Later logins verify against the digest
        assert account_service.login("legacy@example.com", "secret1").id == created.id
        with pytest.raises(InvalidCredentials):
            account_service.login("legacy@example.com", "secret2")

    def test_legacy_credential_untouched_on_failure(
        self, account_service: AccountService, store: InMemoryIdentityStore
    ) -> None:
        created = create_user(store, "legacy", "legacy@example.com", "secret1")

        with pytest.raises(InvalidCredentials):
            account_service.login("legacy@example.com", "secret2")

        assert stored_password(store, created.id) == "secret1"


class TestAdminLogin:
    def test_success(self, account_service: AccountService, store: InMemoryIdentityStore) -> None:
        store.add_admin("root", "root@example.com", hash_password("adminpass", rounds=TEST_BCRYPT_COST))

        admin = account_service.admin_login("root@example.com", "adminpass")

        assert admin.username == "root"

    def test_legacy_admin_credential_upgraded(
        self, account_service: AccountService, store: InMemoryIdentityStore
    ) -> None:
        store.add_admin("root", "root@example.com", "adminpass")

        admin = account_service.admin_login("root@example.com", "adminpass")

        assert admin.password.startswith("$2")
        with store.unit_of_work() as session:
            assert verify_password("adminpass", session.find_admin_by_email("root@example.com").password)

    def test_inactive_admin_refused(self, account_service: AccountService, store: InMemoryIdentityStore) -> None:
        store.add_admin("root", "root@example.com", "adminpass", is_active=False)

        with pytest.raises(AdminInactive):
            account_service.admin_login("root@example.com", "adminpass")

    def test_wrong_password(self, account_service: AccountService, store: InMemoryIdentityStore) -> None:
        store.add_admin("root", "root@example.com", "adminpass")

        with pytest.raises(InvalidCredentials):
            account_service.admin_login("root@example.com", "nope")

    def test_user_is_not_admin(self, account_service: AccountService, store: InMemoryIdentityStore) -> None:
        create_user(store, "alice", "alice@example.com", "secret1")

        with pytest.raises(InvalidCredentials):
            account_service.admin_login("alice@example.com", "secret1")


class TestUpdateProfile:
    def test_updates_fields(self, account_service: AccountService, store: InMemoryIdentityStore) -> None:
        user = create_user(store, "alice", "alice@example.com", "secret1")

        updated = account_service.update_profile(user.id, "alice2", "Alice2@Example.com", age=30, gender="female")

        assert updated.username == "alice2"
        assert updated.email == "alice2@example.com"
        assert updated.age == 30
        with store.unit_of_work() as session:
            assert session.find_user_by_email("alice2@example.com").gender == "female"

    def test_password_change_is_hashed(self, account_service: AccountService, store: InMemoryIdentityStore) -> None:
        user = create_user(store, "alice", "alice@example.com", "secret1")

        account_service.update_profile(user.id, "alice", "alice@example.com", new_password="newpassword")

        password = stored_password(store, user.id)
        assert password.startswith("$2")
        assert verify_password("newpassword", password)

    def test_blank_password_keeps_current(self, account_service: AccountService, store: InMemoryIdentityStore) -> None:
        user = create_user(store, "alice", "alice@example.com", "secret1")

        account_service.update_profile(user.id, "alice", "alice@example.com", new_password="   ")

        assert stored_password(store, user.id) == "secret1"

    def test_username_of_other_user(self, account_service: AccountService, store: InMemoryIdentityStore) -> None:
        user = create_user(store, "alice", "alice@example.com", "secret1")
        create_user(store, "bob", "bob@example.com", "secret1")

        with pytest.raises(UsernameTaken):
            account_service.update_profile(user.id, "bob", "alice@example.com")

    def test_email_of_other_user(self, account_service: AccountService, store: InMemoryIdentityStore) -> None:
        user = create_user(store, "alice", "alice@example.com", "secret1")
        create_user(store, "bob", "bob@example.com", "secret1")

        with pytest.raises(EmailTaken):
            account_service.update_profile(user.id, "alice", "bob@example.com")

    def test_unknown_user(self, account_service: AccountService) -> None:
        with pytest.raises(UserNotFound):
            account_service.update_profile(999, "ghost", "ghost@example.com")


class TestDeleteAccount:
    def test_removes_user_and_results(
        self, account_service: AccountService, store: InMemoryIdentityStore, sender: Mock
    ) -> None:
        user = create_user(store, "alice", "alice@example.com", "secret1")
        with store.unit_of_work() as session:
            result = session.insert_result(uuid4(), user.id, None, {"type": "INTJ"})

        account_service.delete_account(user.id)

        with store.unit_of_work() as session:
            assert session.find_user_by_id(user.id) is None
            assert session.find_result(result.session_id) is None
        sender.send_account_deletion_notice.assert_called_once_with("alice@example.com", "alice")

    def test_notice_failure_does_not_block_deletion(
        self, account_service: AccountService, store: InMemoryIdentityStore, sender: Mock
    ) -> None:
        sender.send_account_deletion_notice.side_effect = RuntimeError("smtp down")
        user = create_user(store, "alice", "alice@example.com", "secret1")

        account_service.delete_account(user.id)

        with store.unit_of_work() as session:
            assert session.find_user_by_id(user.id) is None

    def test_unknown_user(self, account_service: AccountService, sender: Mock) -> None:
        with pytest.raises(UserNotFound):
            account_service.delete_account(999)
        sender.send_account_deletion_notice.assert_not_called()
