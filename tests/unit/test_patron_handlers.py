"""Unit tests for patron account summaries and request helpers.

Both families log the user into the ILS with stored catalog credentials; the
ILS and the authenticator are mocked.
"""

import pytest

from vufind_ajax.ajax_handler.params import Params
from vufind_ajax.ajax_handler.requests import (
    ChangePickupLocation,
    CheckRequestIsValid,
    GetLibraryPickupLocations,
    GetRequestGroupPickupLocations,
)
from vufind_ajax.ajax_handler.user_account import (
    GetUserFines,
    GetUserHolds,
    GetUserILLRequests,
    GetUserStorageRetrievalRequests,
    GetUserTransactions,
    count_request_statuses,
)
from vufind_ajax.config.app_settings import CurrencyConfig
from vufind_ajax.constants import LOGIN_REQUIRED_MESSAGE
from vufind_ajax.exception.api_exceptions import ILSError
from vufind_ajax.infrastructure.ils.authenticator import IlsAuthenticator

from tests.conftest import make_ils, make_ils_authenticator, make_user

PATRON = {"id": "P1", "cat_username": "patron1"}

# ---------------------------------------------------------------------------
# IlsAuthenticator
# ---------------------------------------------------------------------------


class TestIlsAuthenticator:
    """Tests for the stored catalog login."""

    async def test_logs_in_once_per_request(self) -> None:
        ils = make_ils()
        authenticator = IlsAuthenticator(ils, make_user())

        first = await authenticator.stored_catalog_login()
        second = await authenticator.stored_catalog_login()

        assert first == second == {"id": "P1", "cat_username": "patron1"}
        ils.patron_login.assert_awaited_once_with("patron1", "secret")

    async def test_user_without_card(self) -> None:
        ils = make_ils()
        authenticator = IlsAuthenticator(ils, make_user(cat_username=None))

        assert await authenticator.stored_catalog_login() is None
        ils.patron_login.assert_not_awaited()

    async def test_ils_failure_yields_none(self) -> None:
        ils = make_ils()
        ils.patron_login.side_effect = ILSError("down")

        assert await IlsAuthenticator(ils, make_user()).stored_catalog_login() is None


# ---------------------------------------------------------------------------
# Account summaries
# ---------------------------------------------------------------------------


class TestCountRequestStatuses:
    def test_counts(self) -> None:
        requests = [{"available": True}, {"in_transit": True}, {}, {"available": 1}]

        assert count_request_statuses(requests) == {
            "available": 2,
            "in_transit": 1,
            "other": 1,
        }


class TestAccountSummaries:
    """Tests for the getUser* handlers."""

    async def test_fines(self, session_settings) -> None:
        ils = make_ils()
        ils.get_my_fines.return_value = [{"balance": 1250}, {"balance": 100}]
        handler = GetUserFines(
            session_settings,
            ils,
            make_ils_authenticator(PATRON),
            CurrencyConfig(code="EUR", symbol="€"),
        )

        response = await handler.handle_request(Params())

        assert response == ({"total": 2, "display": "€13.50", "value": 13.5},)
        ils.check_capability.assert_awaited_once_with("getMyFines", {"patron": PATRON})
        assert session_settings.writes_disabled is True

    async def test_holds(self, session_settings) -> None:
        ils = make_ils()
        ils.get_my_holds.return_value = [{"available": True}, {}]
        handler = GetUserHolds(session_settings, ils, make_ils_authenticator(PATRON))

        response = await handler.handle_request(Params())

        assert response == ({"available": 1, "in_transit": 0, "other": 1},)

    async def test_ill_and_storage_requests(self, session_settings) -> None:
        ils = make_ils()
        ils.get_my_ill_requests.return_value = [{"in_transit": True}]
        ils.get_my_storage_retrieval_requests.return_value = [{"available": True}]
        patron_login = make_ils_authenticator(PATRON)

        ill_handler = GetUserILLRequests(session_settings, ils, patron_login)
        ill = await ill_handler.handle_request(Params())
        storage = await GetUserStorageRetrievalRequests(
            session_settings, ils, patron_login
        ).handle_request(Params())

        assert ill == ({"available": 0, "in_transit": 1, "other": 0},)
        assert storage == ({"available": 1, "in_transit": 0, "other": 0},)
        ils.check_capability.assert_any_await(
            "getMyStorageRetrievalRequests", {"patron": PATRON}
        )

    async def test_transactions(self, session_settings) -> None:
        ils = make_ils()
        ils.get_my_transactions.return_value = {
            "records": [{"dueStatus": "due"}, {"dueStatus": "overdue"}, {}]
        }
        handler = GetUserTransactions(
            session_settings, ils, make_ils_authenticator(PATRON)
        )

        response = await handler.handle_request(Params())

        assert response == ({"ok": 1, "warn": 1, "overdue": 1},)

    @pytest.mark.parametrize(
        "handler_class",
        [
            GetUserFines,
            GetUserHolds,
            GetUserILLRequests,
            GetUserStorageRetrievalRequests,
            GetUserTransactions,
        ],
    )
    async def test_no_patron_needs_auth(self, session_settings, handler_class) -> None:
        """Anonymous calls get the login message, not an empty body."""
        ils = make_ils()
        handler = handler_class(session_settings, ils, make_ils_authenticator())

        response = await handler.handle_request(Params())

        assert response == (LOGIN_REQUIRED_MESSAGE, 401)
        ils.check_capability.assert_not_awaited()

    async def test_unsupported_by_ils(self, session_settings) -> None:
        handler = GetUserHolds(
            session_settings, make_ils(capability=False), make_ils_authenticator(PATRON)
        )

        response = await handler.handle_request(Params())

        assert response == ("", 405)

    async def test_ils_failure(self, session_settings) -> None:
        ils = make_ils()
        ils.get_my_holds.side_effect = ILSError("down")
        handler = GetUserHolds(session_settings, ils, make_ils_authenticator(PATRON))

        response = await handler.handle_request(Params())

        assert response == ("", 500)


# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------


def _request_handler(handler_class, ils=None, patron=PATRON, user="default"):
    return handler_class(
        None,
        ils or make_ils(),
        make_ils_authenticator(patron),
        make_user() if user == "default" else user,
    )


class TestCheckRequestIsValid:
    """Tests for hold, ILL and storage retrieval validity checks."""

    async def test_hold_is_default(self) -> None:
        ils = make_ils()
        handler = _request_handler(CheckRequestIsValid, ils)

        response = await handler.handle_request(Params({"id": "1", "data": "x"}))

        assert response == ({"status": True, "msg": "request_place_text"},)
        ils.check_request_is_valid.assert_awaited_once_with("1", "x", PATRON)

    async def test_blocked_ill_request(self) -> None:
        ils = make_ils()
        ils.check_ill_request_is_valid.return_value = False
        handler = _request_handler(CheckRequestIsValid, ils)

        response = await handler.handle_request(
            Params({"id": "1", "data": "x", "requestType": "ILLRequest"})
        )

        assert response == ({"status": False, "msg": "ill_request_error_blocked"},)

    async def test_dict_answer_with_status_message(self) -> None:
        ils = make_ils()
        ils.check_storage_retrieval_request_is_valid.return_value = {
            "valid": False,
            "status": "item_not_requestable",
        }
        handler = _request_handler(CheckRequestIsValid, ils)

        response = await handler.handle_request(
            Params({"id": "1", "data": "x", "requestType": "StorageRetrievalRequest"})
        )

        assert response == ({"status": False, "msg": "item_not_requestable"},)

    async def test_missing_parameters(self) -> None:
        handler = _request_handler(CheckRequestIsValid)

        response = await handler.handle_request(Params({"id": "1"}))

        assert response == ("bulk_error_missing", 400)

    async def test_anonymous(self) -> None:
        handler = _request_handler(CheckRequestIsValid, user=None)

        response = await handler.handle_request(Params({"id": "1", "data": "x"}))

        assert response[1] == 401

    async def test_no_patron_is_an_error(self) -> None:
        handler = _request_handler(CheckRequestIsValid, patron=None)

        response = await handler.handle_request(Params({"id": "1", "data": "x"}))

        assert response == ("An error has occurred", 500)


class TestPickupLocations:
    """Tests for pickup location lookups and changes."""

    async def test_library_pickup_locations(self) -> None:
        ils = make_ils()
        ils.get_ill_pickup_locations.return_value = [{"id": "A", "name": "MAIN"}]
        handler = _request_handler(GetLibraryPickupLocations, ils)

        response = await handler.handle_request(
            Params({"id": "1", "pickupLib": "LIB"})
        )

        assert response == ({"locations": [{"id": "A", "name": "MAIN"}]},)
        ils.get_ill_pickup_locations.assert_awaited_once_with("1", "LIB", PATRON)

    async def test_request_group_pickup_locations(self) -> None:
        ils = make_ils()
        ils.get_pickup_locations.return_value = [{"locationDisplay": "MAIN"}]
        ils.get_default_pickup_location.return_value = "MAIN"
        handler = _request_handler(GetRequestGroupPickupLocations, ils)

        response = await handler.handle_request(
            Params({"id": "1", "requestGroupId": "G"})
        )

        assert response == (
            {"locations": [{"locationDisplay": "MAIN"}], "defaultLocation": "MAIN"},
        )
        ils.get_pickup_locations.assert_awaited_once_with(
            PATRON, {"id": "1", "requestGroupId": "G"}
        )

    async def test_ils_failure(self) -> None:
        ils = make_ils()
        ils.get_pickup_locations.side_effect = ILSError("down")
        handler = _request_handler(GetRequestGroupPickupLocations, ils)

        response = await handler.handle_request(
            Params({"id": "1", "requestGroupId": "G"})
        )

        assert response[1] == 500

    async def test_change_pickup_location(self) -> None:
        ils = make_ils()
        handler = _request_handler(ChangePickupLocation, ils)

        response = await handler.handle_request(
            Params({"requestId": "R1", "pickupLocationId": "B"})
        )

        assert response == ({"success": True},)
        ils.change_pickup_location.assert_awaited_once_with(
            PATRON, {"requestId": "R1", "pickupLocationId": "B"}
        )

    async def test_change_pickup_location_needs_request_id(self) -> None:
        handler = _request_handler(ChangePickupLocation)

        response = await handler.handle_request(Params())

        assert response[1] == 400
