"""Backend adapter for the Gemini text-generation REST API.

Sends a single prompt to ``models/{model}:generateContent`` and returns the
generated text. Every failure leaves this module as a BackendError carrying a
structured kind; the substring inspection of provider error text that decides
the kind lives only in classify_error().
"""

from enum import Enum
from typing import Any, Dict, Optional

import httpx

from chat_proxy.config import BackendConfig


class BackendErrorKind(str, Enum):
    """Structured classification of backend failures."""

    AUTH = "auth"
    QUOTA = "quota"
    OTHER = "other"


class BackendError(Exception):
    """Raised when the backend call fails for any reason."""

    def __init__(self, kind: BackendErrorKind, detail: str) -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(detail)


_AUTH_MARKERS = ("API_KEY_INVALID",)
_QUOTA_MARKERS = ("QUOTA_EXCEEDED", "RESOURCE_EXHAUSTED")


def classify_error(text: str) -> BackendErrorKind:
    """Map provider error text to a BackendErrorKind.

    Args:
        text: The provider's error message or raw error body.

    Returns:
        AUTH for an invalid key, QUOTA for exhausted quota, else OTHER.
    """
    if any(marker in text for marker in _AUTH_MARKERS):
        return BackendErrorKind.AUTH
    if any(marker in text for marker in _QUOTA_MARKERS):
        return BackendErrorKind.QUOTA
    return BackendErrorKind.OTHER


def extract_text(data: Dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate in a response."""
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict))


class GeminiBackend:
    """Async client for one Gemini model.

    ``transport`` is passed straight to ``httpx.AsyncClient`` and exists so
    tests can substitute ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: BackendConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        self._transport = transport

    async def generate(self, prompt: str) -> str:
        """Generate text for ``prompt``.

        Returns:
            The generated text; an empty string when the model produced none.

        Raises:
            BackendError: On missing credentials, transport failure, a non-2xx
                response or an unparseable body.
        """
        api_key = self._config.api_key
        if not api_key:
            raise BackendError(
                BackendErrorKind.AUTH,
                "{} is not set".format(self._config.api_key_env),
            )

        url = "{}/models/{}:generateContent".format(
            self._config.base_url.rstrip("/"), self._config.model
        )
        headers = {
            "x-goog-api-key": api_key,
            "Content-Type": "application/json",
        }
        payload = {"contents": [{"parts": [{"text": prompt}]}]}

        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout_seconds, transport=self._transport
            ) as client:
                resp = await client.post(url, json=payload, headers=headers)
                resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            body = exc.response.text
            raise BackendError(
                classify_error(body),
                "Backend returned HTTP {}: {}".format(exc.response.status_code, body),
            ) from exc
        except httpx.HTTPError as exc:
            raise BackendError(
                BackendErrorKind.OTHER,
                "Backend request failed: {!r}".format(exc),
            ) from exc
        except ValueError as exc:
            raise BackendError(
                BackendErrorKind.OTHER, "Backend returned invalid JSON: {}".format(exc)
            ) from exc

        if not isinstance(data, dict):
            raise BackendError(BackendErrorKind.OTHER, "Backend returned a non-object body")

        return extract_text(data)
