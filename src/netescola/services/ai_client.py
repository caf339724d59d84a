"""Gemini client that falls back across API keys, API versions and models."""

import asyncio
import functools
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from google.genai import Client
from google.genai import errors as genai_errors
from google.genai import types

from netescola.utils.config import DEFAULT_GEMINI_API_VERSIONS, DEFAULT_GEMINI_MODELS
from netescola.utils.rate_limiter import ConcurrencyGate
from netescola.utils.retry import AIErrorKind, AIServiceError, retry_with_backoff

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
    """One API key pinned to one API version."""

    api_key: str
    api_version: str
    label: str

    def __str__(self) -> str:
        return f"{self.label}/{self.api_version}"


def build_credentials(
    api_keys: Sequence[Optional[str]],
    api_versions: Sequence[str] = DEFAULT_GEMINI_API_VERSIONS,
) -> List[Credential]:
    """Order credentials key-major: every version of the primary key, then the backup."""
    credentials = []
    seen = set()
    for key in api_keys:
        if not key or key in seen:
            continue
        label = "primary" if not seen else f"backup{len(seen)}"
        seen.add(key)
        for version in api_versions:
            credentials.append(Credential(api_key=key, api_version=version, label=label))
    return credentials


def classify_error(error: Exception) -> AIErrorKind:
    """Map an SDK exception onto the closed error kinds."""
    if isinstance(error, AIServiceError):
        return error.kind
    if isinstance(error, genai_errors.APIError):
        if error.code == 429 or error.status == "RESOURCE_EXHAUSTED":
            return AIErrorKind.RATE_LIMITED
    message = str(error).lower()
    if "quota" in message or "resource_exhausted" in message or "429" in message:
        return AIErrorKind.RATE_LIMITED
    return AIErrorKind.UNKNOWN


def default_client_factory(credential: Credential) -> Client:
    return Client(
        api_key=credential.api_key,
        http_options=types.HttpOptions(api_version=credential.api_version),
    )


class AIClient:
    """Tries every (credential, model) pair in priority order until one answers."""

    def __init__(
        self,
        credentials: List[Credential],
        models: Optional[List[str]] = None,
        client_factory: Callable[[Credential], Client] = default_client_factory,
        temperature: Optional[float] = None,
    ):
        self.credentials = credentials
        self.models = list(models or DEFAULT_GEMINI_MODELS)
        self.temperature = temperature
        self._client_factory = client_factory
        self._clients: Dict[Tuple[str, str], Client] = {}

        if self.credentials:
            logger.info(
                f"Initialized AI client with {len(self.credentials)} credential(s) "
                f"and {len(self.models)} model(s)"
            )
        else:
            logger.warning("No Gemini API key configured, AI features use template text")

    @property
    def is_configured(self) -> bool:
        return bool(self.credentials)

    def _client_for(self, credential: Credential) -> Client:
        cache_key = (credential.api_key, credential.api_version)
        client = self._clients.get(cache_key)
        if client is None:
            client = self._client_factory(credential)
            self._clients[cache_key] = client
        return client

    def _generate_sync(self, credential: Credential, model: str, prompt: str) -> str:
        client = self._client_for(credential)
        config = None
        if self.temperature is not None:
            config = types.GenerateContentConfig(temperature=self.temperature)
        response = client.models.generate_content(model=model, contents=prompt, config=config)
        text = response.text
        if not text or not text.strip():
            raise AIServiceError(AIErrorKind.INVALID_RESPONSE, f"empty response from {model}")
        return text

    async def generate(self, prompt: str) -> str:
        """Return the first successful completion for ``prompt``.

        Raises:
            AIServiceError: NOT_CONFIGURED with no keys; otherwise after every
                combination failed, RATE_LIMITED if any attempt hit a quota,
                UNKNOWN if none did.
        """
        if not self.is_configured:
            raise AIServiceError(AIErrorKind.NOT_CONFIGURED, "Gemini API key not configured")

        loop = asyncio.get_running_loop()
        rate_limited = False
        last_error: Optional[Exception] = None

        for credential in self.credentials:
            for model in self.models:
                try:
                    text = await loop.run_in_executor(
                        None,
                        functools.partial(self._generate_sync, credential, model, prompt),
                    )
                    logger.debug(f"AI response from {model} via {credential}")
                    return text
                except Exception as e:
                    kind = classify_error(e)
                    rate_limited = rate_limited or kind is AIErrorKind.RATE_LIMITED
                    last_error = e
                    logger.warning(f"AI request failed with {model} via {credential}: {e}")

        kind = AIErrorKind.RATE_LIMITED if rate_limited else AIErrorKind.UNKNOWN
        raise AIServiceError(kind, "all combinations failed", cause=last_error)


@dataclass
class AIContext:
    """Per-session AI state: the client, the shared gate and retry settings."""

    client: AIClient
    gate: ConcurrencyGate = field(default_factory=ConcurrencyGate)
    max_retries: int = 2
    base_delay: float = 2.0

    @property
    def is_configured(self) -> bool:
        return self.client.is_configured

    async def generate(self, prompt: str) -> str:
        """Generate through the gate, retrying rate-limited sweeps with backoff."""
        if not self.is_configured:
            raise AIServiceError(AIErrorKind.NOT_CONFIGURED, "Gemini API key not configured")
        return await retry_with_backoff(
            lambda: self.client.generate(prompt),
            gate=self.gate,
            max_retries=self.max_retries,
            base_delay=self.base_delay,
        )

    @classmethod
    def from_config(
        cls,
        config: Dict,
        client_factory: Callable[[Credential], Client] = default_client_factory,
    ) -> 'AIContext':
        credentials = build_credentials(
            [config.get('gemini_api_key'), config.get('gemini_api_key_backup')],
            config.get('gemini_api_versions', DEFAULT_GEMINI_API_VERSIONS),
        )
        client = AIClient(
            credentials,
            models=config.get('gemini_models'),
            client_factory=client_factory,
        )
        gate = ConcurrencyGate(
            max_concurrent=config.get('ai_max_concurrent', 1),
            min_interval=config.get('ai_min_interval_seconds', 3.0),
        )
        return cls(
            client=client,
            gate=gate,
            max_retries=config.get('ai_max_retries', 2),
            base_delay=config.get('ai_retry_base_delay', 2.0),
        )
