"""Tests for the authentication workflow, independent of HTTP."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy.orm import Session

from app.exceptions import DuplicateUserError, InvalidCredentialsError, InvalidTokenError
from app.models.access_token import AccessToken
from app.models.password_reset import PasswordResetToken
from app.models.user import USERNAME_MAX_LENGTH, User
from app.repositories.password_reset import PasswordResetRepository
from app.repositories.user import UserRepository
from app.services.access_tokens import AccessTokenService
from app.services.auth import AuthService, ResetTokenStatus, username_base
from app.services.hashing import PasswordHasher


def register(auth_service: AuthService, email: str = "jane@example.com", first: str = "Jane", last: str = "Doe"):
    return auth_service.register(first, last, email, "password123")


class TestUsernameBase:
    def test_joins_lowercased_names(self):
        assert username_base("Jane", "Doe") == "jane.doe"

    def test_strips_non_alphanumerics(self):
        assert username_base(" Mary-Jane ", "O'Neil") == "maryjane.oneil"

    def test_falls_back_when_nothing_left(self):
        assert username_base("!!", "--") == "user"

    def test_single_usable_name(self):
        assert username_base("Cher", "?") == "cher"

    def test_long_names_leave_room_for_suffix(self):
        base = username_base("a" * 128, "b" * 128)
        assert len(base) < USERNAME_MAX_LENGTH
        assert base.startswith("a" * 128 + ".b")
        assert not base.endswith(".")


class TestRegister:
    def test_creates_one_user_with_lowercase_email(self, auth_service: AuthService, db_session: Session):
        result = register(auth_service, email="Jane.Doe@Example.COM")
        assert db_session.query(User).count() == 1
        assert result.user.email == "jane.doe@example.com"
        assert result.token

    def test_password_digest_verifies_only_original(self, auth_service: AuthService):
        result = register(auth_service)
        hasher = PasswordHasher()
        assert hasher.verify("password123", result.user.password_hash)
        assert not hasher.verify("password124", result.user.password_hash)

    def test_issues_access_token_record(self, auth_service: AuthService, db_session: Session):
        result = register(auth_service)
        record = db_session.query(AccessToken).one()
        assert record.user_id == result.user.id
        assert record.name == "grant-token:user"
        assert record.revoked is False

    def test_dispatches_welcome_with_verification_token(self, auth_service: AuthService, notifier: MagicMock):
        result = register(auth_service)
        notifier.dispatch_welcome.assert_called_once_with(result.user, result.user.email_verification_token)

    def test_username_collisions_get_numeric_suffix(self, auth_service: AuthService):
        first = register(auth_service, email="a@example.com")
        second = register(auth_service, email="b@example.com")
        third = register(auth_service, email="c@example.com")
        assert [first.user.username, second.user.username, third.user.username] == [
            "jane.doe",
            "jane.doe2",
            "jane.doe3",
        ]

    def test_long_name_collision_fits_username_column(self, auth_service: AuthService):
        first = register(auth_service, email="a@example.com", first="a" * 128, last="b" * 128)
        second = register(auth_service, email="b@example.com", first="a" * 128, last="b" * 128)
        assert second.user.username == first.user.username + "2"
        assert len(second.user.username) <= USERNAME_MAX_LENGTH

    def test_duplicate_email_raises(self, auth_service: AuthService, db_session: Session):
        register(auth_service, email="jane@example.com")
        with pytest.raises(DuplicateUserError):
            register(auth_service, email="JANE@example.com", first="Other", last="Person")
        assert db_session.query(User).count() == 1


class TestAuthenticate:
    def test_valid_credentials(self, auth_service: AuthService, clock):
        register(auth_service)
        result = auth_service.authenticate("jane@example.com", "password123")
        assert result.token
        assert result.user.last_login_at == clock.current

    def test_wrong_password(self, auth_service: AuthService):
        register(auth_service)
        with pytest.raises(InvalidCredentialsError) as exc_info:
            auth_service.authenticate("jane@example.com", "nope-nope")
        assert exc_info.value.message == "Invalid email or password"

    def test_unknown_email_has_same_message(self, auth_service: AuthService):
        with pytest.raises(InvalidCredentialsError) as exc_info:
            auth_service.authenticate("ghost@example.com", "password123")
        assert exc_info.value.message == "Invalid email or password"


class TestVerify:
    def test_sets_timestamp_and_clears_token(self, auth_service: AuthService, clock):
        registered = register(auth_service)
        token = registered.user.email_verification_token

        result = auth_service.verify(token)
        assert result.user.email_verified_at == clock.current
        assert result.user.email_verification_token is None
        assert result.token

    def test_second_call_fails(self, auth_service: AuthService):
        token = register(auth_service).user.email_verification_token
        auth_service.verify(token)
        with pytest.raises(InvalidTokenError):
            auth_service.verify(token)

    def test_never_issued_token_fails(self, auth_service: AuthService):
        with pytest.raises(InvalidTokenError):
            auth_service.verify("x" * 60)

    def test_token_cleared_between_lookup_and_update_fails(
        self, auth_service: AuthService, db_session: Session, monkeypatch: pytest.MonkeyPatch
    ):
        token = register(auth_service).user.email_verification_token
        users = auth_service.users
        lookup = users.find_id_by_verification_token

        def lookup_then_consume(value: str):
            user_id = lookup(value)
            db_session.query(User).filter(User.id == user_id).update(
                {User.email_verification_token: None}, synchronize_session=False
            )
            db_session.commit()
            return user_id

        monkeypatch.setattr(users, "find_id_by_verification_token", lookup_then_consume)
        with pytest.raises(InvalidTokenError):
            auth_service.verify(token)

        db_session.expire_all()
        assert db_session.query(User).one().email_verified_at is None


class TestPasswordResetRequest:
    def test_registered_email_creates_record_and_notifies(
        self, auth_service: AuthService, db_session: Session, notifier: MagicMock, clock
    ):
        registered = register(auth_service)
        auth_service.request_password_reset_link("jane@example.com")

        record = db_session.query(PasswordResetToken).one()
        assert record.email == "jane@example.com"
        assert record.created_at == clock.current
        notifier.dispatch_password_reset.assert_called_once_with(registered.user, record.token)

    def test_lookup_ignores_case(self, auth_service: AuthService, db_session: Session):
        register(auth_service)
        auth_service.request_password_reset_link("JANE@EXAMPLE.COM")
        assert db_session.query(PasswordResetToken).one().email == "jane@example.com"

    def test_unregistered_email_does_nothing(self, auth_service: AuthService, db_session: Session, notifier: MagicMock):
        assert auth_service.request_password_reset_link("ghost@example.com") is None
        assert db_session.query(PasswordResetToken).count() == 0
        notifier.dispatch_password_reset.assert_not_called()

    def test_second_request_replaces_first(self, auth_service: AuthService, db_session: Session, clock):
        register(auth_service)
        auth_service.request_password_reset_link("jane@example.com")
        first_token = db_session.query(PasswordResetToken).one().token

        clock.current += timedelta(minutes=5)
        auth_service.request_password_reset_link("jane@example.com")
        records = db_session.query(PasswordResetToken).all()

        assert len(records) == 1
        assert records[0].token != first_token
        assert records[0].created_at == clock.current
        assert auth_service.validate_password_reset_token(first_token) is ResetTokenStatus.NOT_FOUND
        assert auth_service.validate_password_reset_token(records[0].token) is ResetTokenStatus.VALID


class TestValidatePasswordResetToken:
    @pytest.fixture
    def reset_token(self, auth_service: AuthService, db_session: Session) -> str:
        register(auth_service)
        auth_service.request_password_reset_link("jane@example.com")
        return db_session.query(PasswordResetToken).one().token

    def test_valid_before_an_hour(self, auth_service: AuthService, reset_token: str, clock):
        clock.current += timedelta(minutes=59)
        assert auth_service.validate_password_reset_token(reset_token) is ResetTokenStatus.VALID

    def test_valid_exactly_at_an_hour(self, auth_service: AuthService, reset_token: str, clock):
        clock.current += timedelta(hours=1)
        assert auth_service.validate_password_reset_token(reset_token) is ResetTokenStatus.VALID

    def test_expired_after_an_hour(self, auth_service: AuthService, reset_token: str, clock):
        clock.current += timedelta(minutes=61)
        assert auth_service.validate_password_reset_token(reset_token) is ResetTokenStatus.EXPIRED

    def test_zero_ttl_expires_immediately(self, db_session: Session, reset_token: str, notifier: MagicMock, clock):
        service = AuthService(
            users=UserRepository(db_session),
            password_resets=PasswordResetRepository(db_session),
            access_tokens=AccessTokenService(db_session),
            notifier=notifier,
            now=clock,
            reset_token_ttl=timedelta(0),
        )
        assert service.validate_password_reset_token(reset_token) is ResetTokenStatus.VALID
        clock.current += timedelta(seconds=1)
        assert service.validate_password_reset_token(reset_token) is ResetTokenStatus.EXPIRED

    def test_unknown_token(self, auth_service: AuthService):
        assert auth_service.validate_password_reset_token("unknown") is ResetTokenStatus.NOT_FOUND

    def test_validation_does_not_consume(self, auth_service: AuthService, reset_token: str, db_session: Session):
        auth_service.validate_password_reset_token(reset_token)
        auth_service.validate_password_reset_token(reset_token)
        assert db_session.query(PasswordResetToken).count() == 1


class TestSetPassword:
    @pytest.fixture
    def reset_token(self, auth_service: AuthService, db_session: Session) -> str:
        register(auth_service)
        auth_service.request_password_reset_link("jane@example.com")
        return db_session.query(PasswordResetToken).one().token

    def test_changes_password_and_consumes_token(self, auth_service: AuthService, reset_token: str, db_session: Session):
        auth_service.set_password(reset_token, "brand-new-pass")

        user = db_session.query(User).one()
        assert PasswordHasher().verify("brand-new-pass", user.password_hash)
        assert db_session.query(PasswordResetToken).count() == 0

    def test_second_use_fails(self, auth_service: AuthService, reset_token: str):
        auth_service.set_password(reset_token, "brand-new-pass")
        with pytest.raises(InvalidTokenError):
            auth_service.set_password(reset_token, "another-pass")

    def test_unknown_token_fails(self, auth_service: AuthService):
        with pytest.raises(InvalidTokenError):
            auth_service.set_password("unknown", "brand-new-pass")

    def test_expired_but_present_token_is_accepted(self, auth_service: AuthService, reset_token: str, clock):
        clock.current += timedelta(hours=3)
        auth_service.set_password(reset_token, "brand-new-pass")
        result = auth_service.authenticate("jane@example.com", "brand-new-pass")
        assert result.token


class TestLogout:
    def test_revokes_every_token(self, auth_service: AuthService, db_session: Session):
        registered = register(auth_service)
        auth_service.authenticate("jane@example.com", "password123")

        auth_service.logout(registered.user.id)
        tokens = db_session.query(AccessToken).filter(AccessToken.user_id == registered.user.id).all()
        assert len(tokens) == 2
        assert all(token.revoked for token in tokens)

    def test_logout_without_active_tokens(self, auth_service: AuthService):
        registered = register(auth_service)
        auth_service.logout(registered.user.id)
        auth_service.logout(registered.user.id)
