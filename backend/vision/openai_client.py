"""
OpenAI API client for plastic analysis and clean-environment edits.

One client is created per process and shared by all requests. Every call
is raced against a deadline so it finishes before the hosting platform's
hard execution limit.
"""

import re
import time
import asyncio
from typing import Any, Awaitable, Dict, Optional, TypeVar, Union

import httpx

from errors import (
    UpstreamError,
    UpstreamConfigurationError,
    UpstreamTimeout,
    UpstreamTransportError,
    UpstreamHttpError,
    UpstreamResponseError,
)
from settings import Settings, get_settings
from .request_builder import AnalysisRequest, EditRequest
from .response_parser import (
    AnalysisResult,
    EditResult,
    extract_analysis_text,
    extract_edit_url,
)


T = TypeVar("T")

UpstreamRequest = Union[AnalysisRequest, EditRequest]

SERVICE_NAMES = {
    "analysis": "analysis service",
    "edit": "image editing service",
}

TIMEOUT_MESSAGES = {
    "analysis": (
        "The image analysis took too long to complete. "
        "Please try again with a simpler image or try later."
    ),
    "edit": (
        "The clean image generation took too long to complete. "
        "Please try again with a simpler image or try later."
    ),
}

_SECRET_PATTERN = re.compile(r"sk-[A-Za-z0-9_\-*]+")


async def with_deadline(awaitable: Awaitable[T], seconds: float, operation: str = "analysis") -> T:
    """
    Race an awaitable against a deadline.

    The awaitable is cancelled when the deadline passes and UpstreamTimeout
    is raised instead of waiting for it.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError:
        print(f"[ERR] Upstream {operation} exceeded {seconds:.1f}s deadline")
        raise UpstreamTimeout(
            TIMEOUT_MESSAGES.get(operation, "The upstream request took too long to complete.")
        )


def redact_secrets(message: str) -> str:
    """Mask anything that looks like an API key."""
    return _SECRET_PATTERN.sub("sk-***", message)


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str):
            return error
    return None


class OpenAIClient:
    """
    Async client for the OpenAI chat completions and image edits endpoints.

    Handles:
    - Bearer authentication from process settings
    - A shared deadline across all attempts of one call
    - Bounded retries with exponential backoff for transport errors and 5xx
    - Mapping failures to the upstream error taxonomy
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            settings: Process settings (defaults to the environment)
            transport: Optional httpx transport, e.g. a MockTransport in tests
        """
        self.settings = settings or get_settings()
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy initialization of HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.openai_base_url,
                timeout=httpx.Timeout(self.settings.upstream_timeout),
                headers=self._get_headers(),
                transport=self.transport,
            )
        return self._client

    def _get_headers(self) -> Dict[str, str]:
        # Content-Type is left to httpx so multipart bodies get their boundary
        headers = {}
        if self.settings.openai_api_key:
            headers["Authorization"] = f"Bearer {self.settings.openai_api_key}"
        return headers

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _request_kwargs(self, request: UpstreamRequest) -> Dict[str, Any]:
        if isinstance(request, EditRequest):
            return {"data": request.to_form(), "files": request.to_files()}
        return {"json": request.to_payload()}

    async def _send(self, request: UpstreamRequest) -> Any:
        """Single attempt. Returns the decoded JSON body."""
        service = SERVICE_NAMES[request.operation]

        try:
            response = await self.client.post(request.path, **self._request_kwargs(request))
        except httpx.TimeoutException:
            raise UpstreamTransportError(
                f"Connection to the {service} timed out. Please try again later."
            )
        except httpx.TransportError as e:
            print(f"[WARN] Transport error talking to the {service}: {type(e).__name__}")
            raise UpstreamTransportError(
                f"Connection to the {service} failed. Please try again later."
            )
        except httpx.HTTPError as e:
            print(f"[ERR] Unexpected HTTP client error: {type(e).__name__}")
            raise UpstreamError(f"Failed to reach the {service}")

        print(f"[DEBUG] OpenAI {request.operation} response status: {response.status_code}")

        if not response.is_success:
            message = _error_message(response)
            print(f"[ERR] OpenAI API error {response.status_code}: {redact_secrets(message or '')}")
            raise UpstreamHttpError(
                response.status_code,
                f"OpenAI API error: {redact_secrets(message)}"
                if message
                else f"OpenAI API error ({response.status_code})",
            )

        try:
            return response.json()
        except ValueError:
            raise UpstreamResponseError(f"The {service} returned a non-JSON response")

    async def _call_with_retry(self, request: UpstreamRequest) -> Any:
        """Call the upstream API with exponential backoff retry."""
        max_retries = max(0, self.settings.max_retries)
        last_error: Optional[UpstreamError] = None

        for attempt in range(max_retries + 1):
            try:
                return await self._send(request)
            except UpstreamHttpError as e:
                if not e.retryable:
                    raise
                last_error = e
            except UpstreamTransportError as e:
                last_error = e

            if attempt < max_retries:
                delay = self.settings.retry_delay * (2 ** attempt)
                print(
                    f"[WARN] OpenAI {request.operation} failed ({last_error.message}), "
                    f"retrying in {delay:.1f}s ({attempt + 1}/{max_retries})"
                )
                await asyncio.sleep(delay)

        raise last_error

    async def _call(self, request: UpstreamRequest) -> Any:
        if not self.settings.has_credentials:
            raise UpstreamConfigurationError("OpenAI API key is not configured")

        start_time = time.time()
        print(f"[INFO] Calling OpenAI ({request.model}) for {request.operation}...")

        payload = await with_deadline(
            self._call_with_retry(request),
            self.settings.upstream_timeout,
            request.operation,
        )

        elapsed = time.time() - start_time
        print(f"[OK] OpenAI {request.operation} complete in {elapsed:.1f}s")
        return payload

    async def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """Run a vision analysis and return the generated text."""
        payload = await self._call(request)
        return extract_analysis_text(payload)

    async def edit(self, request: EditRequest) -> EditResult:
        """Run a whole-image edit and return the result URL."""
        payload = await self._call(request)
        return extract_edit_url(payload)
