"""Unit tests for authentication errors and context models"""

import pytest

from multiauth_service.core.auth.errors import (
    DelegateFailure,
    InvalidSelection,
    RedirectRequired,
    StateNotFound,
    UnknownSource,
    UnserializableDelegateError,
)
from multiauth_service.core.auth.provider import complete_authentication
from multiauth_service.core.auth.redirect import module_url, redirect_to
from multiauth_service.domain.models import AuthContext, ErrorInfo

pytestmark = pytest.mark.unit


class TestDelegateFailure:
    """Test delegate error serialization"""

    def test_to_error_info(self):
        error = DelegateFailure("Incorrect username or password", code="WRONGUSERPASS")

        assert error.to_error_info() == ErrorInfo(
            code="WRONGUSERPASS", message="Incorrect username or password"
        )

    def test_from_error_info(self):
        error = DelegateFailure.from_error_info(ErrorInfo(code="NOPASSIVE", message="No passive"))

        assert type(error) is DelegateFailure
        assert error.code == "NOPASSIVE"

    def test_wrap_keeps_class_and_message(self):
        error = UnserializableDelegateError.wrap(TimeoutError("backend timed out"))

        assert error.message == "backend timed out"
        assert error.original_class == "TimeoutError"
        assert error.code == "UNSERIALIZABLE_EXCEPTION"
        assert isinstance(error, DelegateFailure)

    def test_wrapped_round_trip(self):
        info = UnserializableDelegateError.wrap(KeyError("uid")).to_error_info()

        error = DelegateFailure.from_error_info(info)

        assert isinstance(error, UnserializableDelegateError)
        assert error.original_class == "KeyError"


class TestMessages:
    """Test error messages"""

    def test_invalid_selection(self):
        assert str(InvalidSelection("admin-backdoor")) == "Invalid authentication source: admin-backdoor"

    def test_unknown_source(self):
        assert str(UnknownSource("multi1")) == "Invalid authentication source during logout: multi1"

    def test_state_not_found_hides_full_id(self):
        error = StateNotFound("0123456789abcdefghij")

        assert "01234567..." in str(error)
        assert "abcdefghij" not in str(error)


class TestRedirect:
    """Test redirect signalling"""

    def test_redirect_to_raises(self):
        with pytest.raises(RedirectRequired) as exc_info:
            redirect_to("/api/v1/multiauth/selectsource", {"AuthState": "abc"})

        assert exc_info.value.location == "/api/v1/multiauth/selectsource?AuthState=abc"

    def test_location_with_existing_query(self):
        redirect = RedirectRequired("/login?lang=en", {"AuthState": "a b"})

        assert redirect.location == "/login?lang=en&AuthState=a+b"

    def test_location_without_params(self):
        assert RedirectRequired("/done").location == "/done"

    def test_module_url(self):
        assert module_url("selectsource") == "/api/v1/multiauth/selectsource"
        assert module_url("/logout/multi1") == "/api/v1/multiauth/logout/multi1"


class TestCompleteAuthentication:
    """Test marking attempts as finished"""

    def test_marks_completed_and_clears_error(self):
        context = AuthContext(
            auth_id="dev",
            error=ErrorInfo(code="WRONGUSERPASS", message="Incorrect username or password"),
        )

        complete_authentication(context)

        assert context.completed is True
        assert context.error is None
        assert context.selected_source == "dev"

    def test_keeps_selected_source(self):
        context = AuthContext(auth_id="multi1", selected_source="ldap")

        assert complete_authentication(context).selected_source == "ldap"
