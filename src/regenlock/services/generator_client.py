"""HTTP client for the external content generator."""

from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from regenlock.models.config import GeneratorConfig
from regenlock.models.generator import GeneratorOutput
from regenlock.models.locked_facts import LockedFacts
from regenlock.services.exceptions import GeneratorError
from regenlock.utils.logging import get_logger


logger = get_logger(__name__)


def locked_facts_payload(locked: LockedFacts) -> Dict[str, Any]:
    """Wire form of locked facts sent alongside the brief (camelCase, unset slots omitted)."""
    payload: Dict[str, Any] = {}
    if locked.numeric is not None:
        payload["offerValue"] = {"value": locked.numeric.value, "kind": locked.numeric.kind}
    if locked.restriction is not None:
        payload["newCustomersOnly"] = locked.restriction
    if locked.expiration is not None:
        payload["endDate"] = locked.expiration.text or (
            f"{locked.expiration.month}/{locked.expiration.day}"
        )
    if locked.cta is not None:
        payload["primaryCTA"] = locked.cta
    return payload


class GeneratorClient:
    """
    Black-box client: POST a brief, receive a batch of generated content.

    The response is either {"items": [...]} (item/section tools) or any
    nested JSON object of copy fields, which is flattened into items.
    There are no retries; any failure aborts the calling action.
    """

    def __init__(self, config: GeneratorConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize generator client.

        Args:
            config: Generator configuration (endpoint, API key, timeout)
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.config = config
        self.timeout = httpx.Timeout(
            connect=10.0,
            read=config.timeout_seconds,
            write=10.0,
            pool=10.0
        )
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    async def generate(self, brief: Dict[str, Any], locked_facts: Optional[LockedFacts] = None) -> GeneratorOutput:
        """
        Run one generation.

        Args:
            brief: Tool inputs
            locked_facts: Facts the generator should keep (regeneration only)

        Returns:
            Validated GeneratorOutput

        Raises:
            GeneratorError: On transport errors, non-2xx status or malformed responses
        """
        body: Dict[str, Any] = {"brief": brief}
        if locked_facts is not None and not locked_facts.is_empty():
            body["lockedFacts"] = locked_facts_payload(locked_facts)

        endpoint = str(self.config.endpoint)
        logger.info("generator_request", endpoint=endpoint, regenerate="lockedFacts" in body)
        logger.debug("generator_request_body", body=body)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(endpoint, json=body, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error("generator_transport_error", endpoint=endpoint, error=str(e))
            raise GeneratorError(f"Generator request failed: {e}") from e

        if not response.is_success:
            message = f"Server error: {response.status_code}"
            try:
                message = response.json().get("error") or message
            except (ValueError, AttributeError):
                pass
            logger.error("generator_http_error", status_code=response.status_code, error=message)
            raise GeneratorError(message, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            logger.error("generator_invalid_json", error=str(e))
            raise GeneratorError("Generator returned invalid JSON") from e

        if not isinstance(data, dict):
            raise GeneratorError("Generator returned an unexpected payload")

        try:
            if isinstance(data.get("items"), list):
                output = GeneratorOutput.model_validate(data)
            else:
                output = GeneratorOutput.from_payload(data)
        except ValidationError as e:
            logger.error("generator_invalid_payload", error=str(e))
            raise GeneratorError(f"Generator returned an invalid payload: {e}") from e

        logger.info("generator_response", item_count=len(output.items), warnings=len(output.warnings))
        return output
