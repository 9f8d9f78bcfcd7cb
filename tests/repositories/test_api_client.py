from unittest.mock import MagicMock

import pytest
import requests

from kosan.core.abort import AbortController
from kosan.core.exceptions import (
    AuthError,
    AuthorizationError,
    ConflictError,
    MalformedResponseError,
    NetworkError,
    RequestAbortedError,
    ResourceNotFoundError,
    ServerError,
    UploadError,
    ValidationError,
)
from kosan.repositories.base.api_client import ApiClient, expect_list

from conftest import BASE_URL, make_response


@pytest.fixture
def api(session, config, mock_http) -> ApiClient:
    return ApiClient(session, config=config, http=mock_http)


def test_unwraps_envelope_data(api, mock_http):
    mock_http.request.return_value = make_response(200, {"success": True, "data": [{"id": 1}], "message": "ok"})

    assert api.get("/bookings") == [{"id": 1}]
    mock_http.request.assert_called_once_with(
        "GET",
        f"{BASE_URL}/bookings",
        json=None,
        data=None,
        files=None,
        timeout=5.0,
    )


def test_bare_payload_is_returned_as_is(api, mock_http):
    mock_http.request.return_value = make_response(200, [{"id": 1}])
    assert api.get("/bookings") == [{"id": 1}]


def test_empty_body_returns_none(api, mock_http):
    mock_http.request.return_value = make_response(204)
    assert api.post("/bookings/1/cancel") is None


@pytest.mark.parametrize(
    "status_code, exc_type",
    [
        (400, ValidationError),
        (422, ValidationError),
        (403, AuthorizationError),
        (404, ResourceNotFoundError),
        (409, ConflictError),
        (413, UploadError),
        (500, ServerError),
        (503, ServerError),
    ],
)
def test_status_codes_map_to_taxonomy(api, mock_http, status_code, exc_type):
    mock_http.request.return_value = make_response(status_code, {"error": "backend says no"})

    with pytest.raises(exc_type) as exc_info:
        api.post("/bookings", json={})

    assert exc_info.value.message == "backend says no"


def test_envelope_errors_are_kept(api, mock_http):
    mock_http.request.return_value = make_response(
        422,
        {"success": False, "data": None, "message": "Validation failed", "errors": ["durasi_sewa must be >= 1"]},
    )

    with pytest.raises(ValidationError) as exc_info:
        api.post("/bookings", json={})

    assert exc_info.value.details["errors"] == ["durasi_sewa must be >= 1"]


def test_unauthorized_clears_session(api, mock_http, session):
    cleared = MagicMock()
    session.on_cleared(cleared)
    mock_http.request.return_value = make_response(401, {"error": "not authenticated"})

    with pytest.raises(AuthError) as exc_info:
        api.get("/bookings")

    assert exc_info.value.message == "not authenticated"
    assert not session.is_authenticated
    cleared.assert_called_once()


@pytest.mark.parametrize("error", [requests.ConnectionError("refused"), requests.Timeout("slow")])
def test_transport_failures_are_network_errors(api, mock_http, error):
    mock_http.request.side_effect = error

    with pytest.raises(NetworkError) as exc_info:
        api.get("/bookings")

    assert exc_info.value.status_code == 0


def test_invalid_json_on_success_is_malformed(api, mock_http):
    response = make_response(200)
    response._content = b"<html>oops</html>"
    mock_http.request.return_value = response

    with pytest.raises(MalformedResponseError):
        api.get("/bookings")


def test_html_error_page_still_maps_status(api, mock_http):
    response = make_response(502)
    response._content = b"<html>Bad gateway</html>"
    mock_http.request.return_value = response

    with pytest.raises(ServerError) as exc_info:
        api.get("/bookings")

    assert exc_info.value.status_code == 502


def test_success_false_envelope_is_an_error(api, mock_http):
    mock_http.request.return_value = make_response(200, {"success": False, "message": "Gateway unavailable"})

    with pytest.raises(ServerError) as exc_info:
        api.get("/bookings")

    assert exc_info.value.message == "Gateway unavailable"


def test_aborted_signal_prevents_request(api, mock_http):
    controller = AbortController()
    controller.abort("unmounted")

    with pytest.raises(RequestAbortedError):
        api.get("/bookings", signal=controller.signal)

    mock_http.request.assert_not_called()


def test_response_after_abort_is_discarded(api, mock_http):
    controller = AbortController()

    def respond(*args, **kwargs):
        controller.abort("unmounted")
        return make_response(200, [])

    mock_http.request.side_effect = respond

    with pytest.raises(RequestAbortedError):
        api.get("/bookings", signal=controller.signal)


def test_expect_list():
    assert expect_list(None, "bookings") == []
    assert expect_list([1], "bookings") == [1]
    with pytest.raises(MalformedResponseError):
        expect_list({"id": 1}, "bookings")
