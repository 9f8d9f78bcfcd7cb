"""
HTTP client for the kos backend.

Wraps a ``requests.Session`` whose cookie jar carries the httpOnly session
cookie set at login, so every call is made with credentials included.
Responses are unwrapped from the ``{success, data, message, errors}``
envelope and failures are mapped onto the client exception taxonomy with
the backend's message preserved verbatim.
"""

from typing import Any, Dict, List, Optional

import requests

from kosan.config.settings import Settings, get_settings
from kosan.core.abort import AbortSignal, raise_if_aborted
from kosan.core.exceptions import (
    AuthError,
    AuthorizationError,
    BaseAppException,
    ConflictError,
    MalformedResponseError,
    NetworkError,
    ResourceNotFoundError,
    ServerError,
    UploadError,
    ValidationError,
)
from kosan.core.logging import get_logger
from kosan.core.session import SessionState
from kosan.schemas.common.response import ApiEnvelope

logger = get_logger(__name__)


def expect_list(payload: Any, resource: str) -> List[Any]:
    """Envelope ``data`` that must be a JSON array; ``null`` reads as empty."""
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise MalformedResponseError(
            f"Expected a list of {resource}",
            details={"type": type(payload).__name__},
        )
    return payload


class ApiClient:
    """
    Authenticated JSON client.

    A 401 from any endpoint clears the local ``SessionState`` before the
    ``AuthError`` propagates, which in turn drops the user's cached read
    models through the session's ``on_cleared`` listeners.
    """

    def __init__(
        self,
        session_state: SessionState,
        config: Optional[Settings] = None,
        http: Optional[requests.Session] = None,
    ):
        self.config = config or get_settings()
        self.session_state = session_state
        self.http = http or requests.Session()
        self.base_url = self.config.API_BASE_URL
        self.timeout = self.config.REQUEST_TIMEOUT_SECONDS

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    # ==================== Verbs ====================

    def get(self, path: str, signal: Optional[AbortSignal] = None) -> Any:
        return self.request("GET", path, signal=signal)

    def post(
        self,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        signal: Optional[AbortSignal] = None,
    ) -> Any:
        return self.request("POST", path, json=json, data=data, files=files, signal=signal)

    def request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        signal: Optional[AbortSignal] = None,
    ) -> Any:
        """
        Perform a request and return the envelope's ``data``.

        Args:
            method: HTTP verb
            path: Path relative to ``API_BASE_URL``
            json: JSON body
            data: Form fields for multipart requests
            files: Multipart files as accepted by ``requests``
            signal: Optional abort signal checked before sending and again
                before the result is returned

        Raises:
            RequestAbortedError: If ``signal`` was aborted
            NetworkError: On connection failures and timeouts
            BaseAppException: Subclass matching the response status
        """
        raise_if_aborted(signal)
        url = self._url(path)
        logger.debug("API request", extra={"method": method, "path": path})

        try:
            response = self.http.request(
                method,
                url,
                json=json,
                data=data,
                files=files,
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.warning("API transport failure", extra={"method": method, "path": path, "error": str(e)})
            raise NetworkError(details={"method": method, "path": path}) from e
        except requests.RequestException as e:
            logger.warning("API request failed", extra={"method": method, "path": path, "error": str(e)})
            raise NetworkError(details={"method": method, "path": path, "error": str(e)}) from e

        # Response arrived after the caller went away; drop it.
        raise_if_aborted(signal)

        envelope = self._parse_envelope(response)
        if not response.ok:
            error = self._map_error(response.status_code, envelope, path)
            logger.warning(
                "API error response",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "error_code": error.error_code.value,
                },
            )
            if isinstance(error, AuthError):
                self.session_state.clear()
            raise error

        if envelope.success is False:
            raise ServerError(
                envelope.message or "Request failed",
                status_code=response.status_code,
                details={"errors": envelope.errors or []},
            )
        return envelope.data

    # ==================== Helpers ====================

    def _parse_envelope(self, response: requests.Response) -> ApiEnvelope:
        if response.status_code == 204 or not response.content:
            return ApiEnvelope(success=None, data=None)
        try:
            body = response.json()
        except ValueError as e:
            if not response.ok:
                # Proxies answer errors with HTML; status mapping still applies.
                return ApiEnvelope(success=False, message=None)
            raise MalformedResponseError(
                "Response body is not valid JSON",
                details={"status_code": response.status_code},
            ) from e
        return ApiEnvelope.from_body(body)

    @staticmethod
    def _map_error(status_code: int, envelope: ApiEnvelope, path: str) -> BaseAppException:
        message = envelope.message or (envelope.errors[0] if envelope.errors else None)

        if status_code == 401:
            return AuthError(message or "Unauthorized: Please login again")
        if status_code == 403:
            return AuthorizationError(message or "Access denied")
        if status_code == 404:
            return ResourceNotFoundError(resource_type="Resource", resource_id=path, message=message)
        if status_code == 409:
            return ConflictError(message or "The request conflicts with the current state of the booking")
        if status_code in (413, 415):
            return UploadError(message or "File upload was rejected", status_code=status_code)
        if status_code in (400, 422):
            return ValidationError(message or "Validation failed", errors=envelope.errors, status_code=status_code)
        if status_code >= 500:
            return ServerError(message or "The server encountered an error", status_code=status_code)
        return ServerError(message or f"Unexpected response status {status_code}", status_code=status_code)
