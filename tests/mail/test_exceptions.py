"""Tests for the mail exception hierarchy."""

from __future__ import annotations

import pytest

from mailcraft.config import MailcraftError
from mailcraft.mail import (
    IllegalInputError,
    InvalidAddressError,
    MailConfigurationError,
    MailError,
    MailStateError,
    MailTransportError,
    MailValidationError,
    MissingFieldError,
    NullArgumentError,
)


class TestHierarchy:
    """Base classes of each mail error."""

    @pytest.mark.parametrize(
        "exc_type",
        [
            NullArgumentError,
            MailValidationError,
            InvalidAddressError,
            IllegalInputError,
            MissingFieldError,
            MailStateError,
            MailConfigurationError,
            MailTransportError,
        ],
    )
    def test_all_are_mail_errors(self, exc_type: type[Exception]) -> None:
        assert issubclass(exc_type, MailError)
        assert issubclass(exc_type, MailcraftError)

    def test_null_argument_is_not_validation_error(self) -> None:
        assert issubclass(NullArgumentError, TypeError)
        assert not issubclass(NullArgumentError, MailValidationError)

    @pytest.mark.parametrize("exc_type", [InvalidAddressError, IllegalInputError, MissingFieldError])
    def test_validation_errors_are_value_errors(self, exc_type: type[Exception]) -> None:
        assert issubclass(exc_type, MailValidationError)
        assert issubclass(exc_type, ValueError)

    def test_state_error_is_runtime_error(self) -> None:
        assert issubclass(MailStateError, RuntimeError)


class TestContext:
    """Messages and details carried by each error."""

    def test_null_argument_message(self) -> None:
        error = NullArgumentError("email", "Reply-To")
        assert str(error) == "Argument 'email' for Reply-To must not be None"
        assert error.details == {"argument": "email", "role": "Reply-To"}

    def test_null_argument_without_role(self) -> None:
        assert str(NullArgumentError("session")) == "Argument 'session' must not be None"

    def test_invalid_address_message(self) -> None:
        error = InvalidAddressError("nope", role="To", reason="missing '@'")
        assert str(error) == "Invalid address 'nope': missing '@'"
        assert error.details == {"value": "nope", "role": "To", "reason": "missing '@'"}

    def test_illegal_input_message(self) -> None:
        error = IllegalInputError("header name", "", "must not be empty")
        assert str(error) == "Illegal header name '': must not be empty"
        assert error.field == "header name"

    def test_missing_field(self) -> None:
        error = MissingFieldError("from", "From address required")
        assert error.message == "From address required"
        assert error.details == {"field": "from"}

    def test_plain_errors_have_empty_details(self) -> None:
        assert MailStateError("already built").details == {}
