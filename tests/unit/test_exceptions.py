"""Unit tests for the VuFind exception hierarchy.

Verifies the HTTP status codes and error codes each exception carries, since
the error handler middleware turns them straight into responses.
"""

from vufind_ajax.exception.api_exceptions import (
    AuthenticationRequiredError,
    BadRequestError,
    ConfigurationError,
    ForbiddenError,
    ILSError,
    MethodNotAllowedError,
    MissingParameterError,
    RecordMissingError,
    RelaisError,
    ResolverError,
    SearchBackendError,
    ServerError,
    ServiceUnavailableError,
    UnknownAjaxMethodError,
    VuFindException,
)

# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------


class TestVuFindException:
    """Tests for the VuFindException base class."""

    def test_defaults_to_internal_error(self) -> None:
        """A bare VuFindException maps to HTTP 500 with INTERNAL_ERROR."""
        exc = VuFindException("boom")

        assert exc.status_code == 500
        assert exc.code == "INTERNAL_ERROR"
        assert exc.details == {}

    def test_message_is_str_of_exception(self) -> None:
        """str(exc) is the human-readable message."""
        assert str(VuFindException("boom")) == "boom"


# ---------------------------------------------------------------------------
# Request errors
# ---------------------------------------------------------------------------


class TestRequestErrors:
    """Tests for 4xx exceptions raised during dispatch."""

    def test_bad_request_is_400(self) -> None:
        assert BadRequestError().status_code == 400

    def test_missing_parameter_names_the_field(self) -> None:
        """MissingParameterError records the missing field and builds its message."""
        exc = MissingParameterError("method")

        assert exc.status_code == 400
        assert exc.code == "MISSING_PARAMETER"
        assert exc.field == "method"
        assert exc.message == "Missing parameter 'method'"

    def test_unknown_method_message(self) -> None:
        """UnknownAjaxMethodError reports the method the client asked for."""
        exc = UnknownAjaxMethodError("fooBar")

        assert exc.status_code == 400
        assert exc.message == "Invalid Method: fooBar"
        assert exc.details == {"method": "fooBar"}

    def test_unknown_method_is_a_bad_request(self) -> None:
        assert isinstance(UnknownAjaxMethodError("x"), BadRequestError)

    def test_method_not_allowed_is_405(self) -> None:
        assert MethodNotAllowedError().status_code == 405

    def test_authentication_required_is_401(self) -> None:
        exc = AuthenticationRequiredError()

        assert exc.status_code == 401
        assert exc.code == "NEED_AUTH"

    def test_forbidden_is_403(self) -> None:
        assert ForbiddenError().status_code == 403

    def test_record_missing_is_404_with_details(self) -> None:
        exc = RecordMissingError("123")

        assert exc.status_code == 404
        assert exc.details == {"record_id": "123", "source": "Solr"}


# ---------------------------------------------------------------------------
# Server and collaborator errors
# ---------------------------------------------------------------------------


class TestServerErrors:
    """Tests for 5xx exceptions."""

    def test_service_unavailable_is_503(self) -> None:
        assert ServiceUnavailableError().status_code == 503

    def test_collaborator_errors_are_server_errors(self) -> None:
        """Every collaborator failure maps to HTTP 500 with its own code."""
        cases = {
            ConfigurationError: "CONFIGURATION_ERROR",
            ILSError: "ILS_ERROR",
            SearchBackendError: "SEARCH_BACKEND_ERROR",
            ResolverError: "RESOLVER_ERROR",
            RelaisError: "RELAIS_ERROR",
        }
        for exc_class, code in cases.items():
            exc = exc_class("failed")

            assert isinstance(exc, ServerError)
            assert exc.status_code == 500
            assert exc.code == code

    def test_details_are_kept(self) -> None:
        exc = ILSError("down", details={"method": "getStatuses"})

        assert exc.details == {"method": "getStatuses"}
