"""Chat request handling.

Request flow:
1. Enforce the per-identity rate limit
2. Validate the message
3. Check the backend credential is configured
4. Build the prompt and call the backend
5. Map the outcome to a status code and JSON body
"""

import uuid
from typing import Any, Dict, Optional, Protocol, Tuple

from chat_proxy.backend import BackendError, BackendErrorKind
from chat_proxy.config import ChatProxyConfig
from chat_proxy.errors import (
    BackendAuthError,
    BackendEmptyResponseError,
    BackendFailureError,
    BackendQuotaError,
    ChatProxyError,
    ConfigurationError,
)
from chat_proxy.limiter import RateLimiter
from chat_proxy.models import ChatRequest, ChatResponse, ErrorResponse
from chat_proxy.telemetry import log_request, logger
from chat_proxy.validation import require_valid_message

PROMPT_TEMPLATE = (
    "You are a helpful, friendly, and knowledgeable AI assistant. "
    "Please respond to the following message in a conversational and helpful "
    "manner. Keep responses concise but informative.\n\n"
    "User message: {message}"
)

_BACKEND_ERRORS = {
    BackendErrorKind.AUTH: BackendAuthError,
    BackendErrorKind.QUOTA: BackendQuotaError,
    BackendErrorKind.OTHER: BackendFailureError,
}


class TextBackend(Protocol):
    """Anything that turns a prompt into generated text."""

    async def generate(self, prompt: str) -> str:
        ...


def build_prompt(message: str) -> str:
    """Embed the user message verbatim in the instructional prompt."""
    return PROMPT_TEMPLATE.format(message=message)


def extract_message(body: Any) -> Any:
    """Return the ``message`` field of a decoded JSON body, or None."""
    if isinstance(body, dict):
        return ChatRequest.model_validate(body).message
    return None


class ChatHandler:
    """Orchestrates a single /api/chat request."""

    def __init__(
        self,
        config: ChatProxyConfig,
        limiter: RateLimiter,
        backend: TextBackend,
    ) -> None:
        self._config = config
        self._limiter = limiter
        self._backend = backend

    async def handle(self, body: Any, identity: str) -> Tuple[int, Dict[str, str]]:
        """Process a decoded request body for ``identity``.

        Returns:
            The HTTP status code and a JSON-serializable body holding either
            ``response`` or ``error``.
        """
        request_id = "chat-{}".format(uuid.uuid4().hex[:12])
        model: Optional[str] = None

        try:
            message = extract_message(body)
            self._limiter.check(identity)
            require_valid_message(message)

            if not self._config.backend.api_key:
                raise ConfigurationError(
                    detail="{} is not set".format(self._config.backend.api_key_env)
                )

            model = self._config.backend.model
            text = await self._generate(build_prompt(message))
        except ChatProxyError as exc:
            log_request(
                identity=identity,
                outcome=exc.outcome,
                status=exc.status_code,
                error=exc.detail,
                request_id=request_id,
                model=model,
            )
            return exc.status_code, ErrorResponse(error=exc.message).model_dump()

        log_request(
            identity=identity,
            outcome="success",
            status=200,
            request_id=request_id,
            model=model,
        )
        return 200, ChatResponse(response=text).model_dump()

    async def _generate(self, prompt: str) -> str:
        try:
            text = await self._backend.generate(prompt)
        except BackendError as exc:
            raise _BACKEND_ERRORS[exc.kind](detail=exc.detail) from exc
        except Exception as exc:
            logger.exception("Unexpected backend failure")
            raise BackendFailureError(detail=repr(exc)) from exc

        if not text:
            raise BackendEmptyResponseError(detail="Empty response from AI model")
        return text
