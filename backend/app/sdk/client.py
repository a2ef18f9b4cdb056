"""ApiClient: single-attempt requests against the CargoFlow API.

Nothing is retried. Status handling:
  401       -> stored session is cleared, SessionExpiredError is raised
  403/404   -> logged, ApiError raised
  5xx       -> logged, ApiError raised
  no reply  -> logged as a network error, NetworkError raised
"""

import logging
from typing import Any

import httpx

logger = logging.getLogger("cargoflow.sdk")

STATUS_MESSAGES = {
    403: "Access denied: Insufficient permissions",
    404: "Resource not found",
    500: "Server error occurred",
}


class ApiError(Exception):
    """Non-2xx response from the API."""

    def __init__(self, status: int, message: str, body: Any = None):
        self.status = status
        self.message = message
        self.body = body
        super().__init__(f"{status}: {message}")


class SessionExpiredError(ApiError):
    """401: the stored session has been cleared, the caller must log in again."""

    def __init__(self, message: str = "Session expired", body: Any = None):
        super().__init__(401, message, body)


class NetworkError(Exception):
    """The request never produced a response."""


def error_message(response: httpx.Response) -> str:
    """Pull the user-facing message out of an error body."""
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if body.get("message"):
            return str(body["message"])
        detail = body.get("detail")
        if isinstance(detail, str) and detail:
            return detail
    return response.reason_phrase


class ApiClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token: str | None = None
        self.refresh_token: str | None = None
        self.user: dict | None = None
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        await self._http.aclose()

    # ── Session ──────────────────────────────────────────────

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    def set_session(self, payload: dict) -> None:
        self.token = payload.get("access_token")
        self.refresh_token = payload.get("refresh_token")
        self.user = payload.get("user")

    def clear_session(self) -> None:
        self.token = None
        self.refresh_token = None
        self.user = None

    async def login(self, email: str, password: str) -> dict:
        data = await self.post("/api/auth/login", json={"email": email, "password": password})
        self.set_session(data)
        return data

    async def logout(self) -> None:
        """Revoke the token server-side when possible; always clear locally."""
        try:
            if self.token:
                await self.post("/api/auth/logout")
        except (ApiError, NetworkError) as exc:
            logger.warning("Logout request failed: %s", exc)
        finally:
            self.clear_session()

    async def me(self) -> dict:
        self.user = await self.get("/api/auth/me")
        return self.user

    # ── Requests ─────────────────────────────────────────────

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict | None = None,
        json: Any = None,
        raw: bool = False,
    ) -> Any:
        headers = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            response = await self._http.request(
                method, path, params=params, json=json, headers=headers,
            )
        except httpx.TransportError as exc:
            logger.error("Network error: No response from server (%s %s): %s", method, path, exc)
            raise NetworkError("Network error: No response from server") from exc

        if response.is_success:
            if raw:
                return response.content
            if response.status_code == 204 or not response.content:
                return None
            return response.json()

        self._handle_error(response)

    def _handle_error(self, response: httpx.Response) -> None:
        status = response.status_code
        message = error_message(response)
        try:
            body = response.json()
        except ValueError:
            body = response.text

        if status == 401:
            self.clear_session()
            raise SessionExpiredError(message, body)

        if status in STATUS_MESSAGES:
            logger.error("%s: %s", STATUS_MESSAGES[status], message)
        elif status >= 500:
            logger.error("%s (%d): %s", STATUS_MESSAGES[500], status, message)
        raise ApiError(status, message, body)

    async def get(self, path: str, **kwargs) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> Any:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs) -> Any:
        return await self.request("DELETE", path, **kwargs)
