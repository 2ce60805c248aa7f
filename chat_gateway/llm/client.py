"""
Upstream chat-completion client.

One long-lived httpx.AsyncClient per process; one POST per proxied request,
never retried.
"""

import logging
from typing import Optional, Dict, Any

import httpx

from ..config import UpstreamConfig
from ..errors import TransportError, classify_upstream_error

logger = logging.getLogger("chat-gateway.llm")


class UpstreamClient:
    """Sends chat-completion requests to the configured provider."""

    def __init__(
        self,
        config: UpstreamConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self._client = httpx.AsyncClient(
            timeout=config.timeout,
            transport=transport,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    async def create_chat_completion(self, body: Dict[str, Any]) -> Any:
        """
        Forward ``body`` upstream and return the decoded response verbatim.

        Raises UpstreamError when the provider answers with an error status,
        TransportError for anything else that goes wrong.
        """
        try:
            response = await self._client.post(
                self.config.completions_url,
                json=body,
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            logger.error(f"Upstream request failed: {type(e).__name__}: {e}")
            raise TransportError(e) from e

        if not response.is_success:
            if not response.is_error:
                # Redirects are not followed; anything outside 2xx/4xx/5xx is a failure
                logger.error(f"Upstream returned unexpected status {response.status_code}")
                raise TransportError()
            try:
                error_body = response.json()
            except ValueError:
                error_body = None
            error = classify_upstream_error(response.status_code, error_body)
            logger.warning(
                f"Upstream error: status={response.status_code} "
                f"mapped={error.status_code}/{error.error_type} code={error.code}"
            )
            raise error

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Upstream returned non-JSON body (status={response.status_code})")
            raise TransportError(e) from e

    async def aclose(self):
        await self._client.aclose()
