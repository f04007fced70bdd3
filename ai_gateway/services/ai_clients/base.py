"""Base class for AI provider clients."""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import httpx

from ai_gateway.config import settings
from ai_gateway.services.ai_clients.prompts import build_analysis_messages
from ai_gateway.services.ai_clients.types import (
    ChatMessage,
    CompletionOptions,
    CompletionResult,
    ConnectionTestResult,
    ProviderIdentity,
)
from ai_gateway.services.errors import (
    NetworkFailure,
    NetworkTimeout,
    VendorAuthError,
    VendorError,
    VendorInvalidModel,
    VendorRateLimited,
)

logger = logging.getLogger(__name__)

MessageLike = Union[ChatMessage, Dict[str, str]]

# Vendor error codes/types and phrases that identify an unknown model
MODEL_ERROR_CODES = {"model_not_found", "invalid_model"}
MODEL_ERROR_PHRASES = (
    "not a valid model",
    "invalid model",
    "model not found",
    "unknown model",
    "no such model",
)


class AIClient:
    """Common capability set of every AI provider client.

    Subclasses describe one vendor's wire format:

    * ``_build_chat_request`` turns normalized messages into the vendor body.
    * ``_parse_chat_response`` maps the vendor body into ``CompletionResult``.
    * ``_probe`` performs the cheapest authenticated call.

    Clients that can enumerate models set ``supports_model_listing = True`` and
    implement ``list_models``. Clients must be used as async context managers;
    each instance owns one HTTP connection pool for the duration of a request.
    """

    provider: ProviderIdentity
    display_name: str = ""
    default_model: str = ""
    default_base_url: str = ""
    supports_model_listing: bool = False

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize the client.

        Args:
            api_key: Decrypted vendor API key.
            base_url: Override for the vendor API base URL.
            timeout: Request timeout in seconds (defaults to settings.ai_request_timeout).
        """
        if not api_key:
            raise ValueError(f"{self.display_name} client requires an API key")

        self._api_key = api_key
        self.base_url = (base_url or self.default_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.ai_request_timeout
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        """Async context manager entry."""
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=self._default_headers(),
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get the HTTP client.

        Raises:
            RuntimeError: If the client is not initialized (use async context manager).
        """
        if self._client is None:
            raise RuntimeError(f"{type(self).__name__} must be used as async context manager")
        return self._client

    def _default_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    def strip_model_namespace(self, model_id: str) -> str:
        """Remove this provider's ``provider/`` prefix from a model identifier.

        Only the client's own namespace is removed, so ``openai/gpt-4o`` stays
        intact on a router that needs the vendor prefix.
        """
        prefix = f"{self.provider.value}/"
        if model_id.startswith(prefix):
            return model_id[len(prefix):]
        return model_id

    async def _request(
        self,
        method: str,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Make one HTTP request to the vendor and return the decoded JSON body.

        Raises:
            NetworkTimeout: If the request times out.
            NetworkFailure: If the vendor cannot be reached.
            VendorError: If the vendor reports an error.
        """
        client = self._get_client()

        try:
            response = await client.request(method=method, url=path, json=json_data)
        except httpx.TimeoutException:
            logger.error(f"Timeout for {method} {self.base_url}{path}")
            raise NetworkTimeout(
                f"{self.display_name} API did not respond within {self.timeout} seconds",
                provider=self.provider.value,
            )
        except httpx.RequestError as e:
            logger.error(f"Network error for {method} {self.base_url}{path}: {e}")
            raise NetworkFailure(
                f"Could not reach {self.display_name} API: {e}",
                provider=self.provider.value,
            )

        if response.status_code >= 400:
            error = self._error_from_response(response)
            logger.error(
                f"{self.display_name} API error {response.status_code} for {method} {path}: {error.message}"
            )
            raise error

        try:
            data = response.json()
        except ValueError:
            raise VendorError(
                f"{self.display_name} API returned a response that is not valid JSON",
                provider=self.provider.value,
                status_code=response.status_code,
            )

        # Some gateways report failures in-band with a 200 status
        if isinstance(data, dict) and data.get("error"):
            error = self._classify_error(response.status_code, data["error"])
            logger.error(f"{self.display_name} API returned an error payload: {error.message}")
            raise error

        return data

    def _error_from_response(self, response: httpx.Response) -> VendorError:
        try:
            body = response.json()
        except ValueError:
            body = None

        error = body.get("error") if isinstance(body, dict) else None
        return self._classify_error(response.status_code, error)

    def _classify_error(self, status_code: int, error: Any) -> VendorError:
        """Map a vendor error payload and HTTP status to the error taxonomy."""
        message = None
        codes = set()
        if isinstance(error, dict):
            message = error.get("message")
            codes = {
                str(error[key]).lower() for key in ("type", "code", "status") if error.get(key) is not None
            }
            # OpenRouter nests the upstream status code inside the error
            if status_code < 400 and isinstance(error.get("code"), int):
                status_code = error["code"]
        elif isinstance(error, str):
            message = error

        if not message:
            message = f"API error: {status_code} {httpx.codes.get_reason_phrase(status_code)}".strip()

        text = message.lower()
        if status_code in (401, 403) or (status_code == 400 and "api key" in text):
            error_class = VendorAuthError
        elif status_code == 429:
            error_class = VendorRateLimited
        elif status_code == 404 or (status_code in (400, 422) and self._is_model_error(text, codes)):
            error_class = VendorInvalidModel
        else:
            error_class = VendorError

        return error_class(message, provider=self.provider.value, status_code=status_code)

    @staticmethod
    def _is_model_error(text: str, codes: set) -> bool:
        """Whether a bad-request error names an unknown model.

        Only explicit codes and phrases count; other bad requests that merely
        mention the model (context length, unsupported parameters) do not.
        """
        if codes & MODEL_ERROR_CODES:
            return True
        if any(phrase in text for phrase in MODEL_ERROR_PHRASES):
            return True
        return "model" in text and "does not exist" in text

    @staticmethod
    def _coerce_messages(messages: Sequence[MessageLike]) -> List[ChatMessage]:
        return [
            message if isinstance(message, ChatMessage) else ChatMessage(**message)
            for message in messages
        ]

    async def test_connection(self) -> ConnectionTestResult:
        """Test the credentials with the cheapest authenticated vendor call.

        Vendor and network failures are reported in the result, never raised.
        """
        try:
            await self._probe()
        except VendorError as e:
            logger.warning(f"Connection test failed for {self.display_name}: {e.message}")
            return ConnectionTestResult(ok=False, message=e.message or f"Failed to connect to {self.display_name} API")

        logger.info(f"Connection test succeeded for {self.display_name}")
        return ConnectionTestResult(ok=True, message=f"Successfully connected to {self.display_name} API")

    async def create_chat_completion(
        self,
        model_id: str,
        messages: Sequence[MessageLike],
        options: Optional[CompletionOptions] = None,
    ) -> CompletionResult:
        """Send an ordered conversation to the vendor.

        Args:
            model_id: Model identifier, bare or prefixed with this provider's namespace.
            messages: Ordered conversation, forwarded in the same order.
            options: Sampling options.

        Returns:
            The normalized completion.
        """
        model = self.strip_model_namespace(model_id)
        chat_messages = self._coerce_messages(messages)
        path, body = self._build_chat_request(model, chat_messages, options or CompletionOptions())

        logger.info(f"Requesting {self.display_name} completion: model={model}, messages={len(chat_messages)}")
        data = await self._request("POST", path, json_data=body)

        result = self._parse_chat_response(data)
        if result.model is None:
            result.model = model
        logger.info(
            f"{self.display_name} completion received: model={result.model}, "
            f"finish_reason={result.finish_reason}"
        )
        return result

    async def analyze_data(self, model_id: str, data: Any, query: str) -> str:
        """Run a financial analysis prompt over a data snapshot.

        Returns:
            Only the text of the assistant's answer.
        """
        messages = build_analysis_messages(data, query)
        result = await self.create_chat_completion(model_id, messages)
        return result.content

    async def _probe(self) -> None:
        """Make the cheapest authenticated vendor call. Subclasses must override."""
        raise NotImplementedError

    def _build_chat_request(
        self,
        model: str,
        messages: List[ChatMessage],
        options: CompletionOptions,
    ) -> Tuple[str, Dict[str, Any]]:
        """Return the (path, body) of a vendor chat request. Subclasses must override."""
        raise NotImplementedError

    def _parse_chat_response(self, data: Dict[str, Any]) -> CompletionResult:
        """Map a vendor chat response into a CompletionResult. Subclasses must override."""
        raise NotImplementedError
