"""Base class shared by all provider adapters."""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from . import metrics
from .delivery import AttemptResult, ErrorKind, NotificationChannel, RenderedContent
from .exceptions import ProviderError, ProviderTimeoutError
from .ports.adapter import IProviderAdapter

logger = logging.getLogger(__name__)


class ProviderAdapter(IProviderAdapter, ABC):
    """
    Turns a provider-specific ``_deliver`` coroutine into the uniform
    :meth:`attempt` contract.

    - Unconfigured adapters report ``UNAVAILABLE`` without touching the network.
    - ``_deliver`` runs under ``asyncio.wait_for``; expiry reports ``TIMEOUT``
      and cancels the outbound request.
    - :class:`ProviderError` and unexpected exceptions report ``PROVIDER_FAILURE``.
    - External cancellation propagates unchanged.
    """

    name: str = "provider"
    channel: NotificationChannel

    @property
    def is_configured(self) -> bool:
        return True

    def describe_missing_configuration(self) -> str:
        return "adapter is not configured"

    async def attempt(
        self,
        recipient: str,
        content: RenderedContent,
        *,
        timeout: float,
        metadata: Mapping[str, Any] | None = None,
    ) -> AttemptResult:
        if not self.is_configured:
            detail = self.describe_missing_configuration()
            logger.debug(f"{self.name} unavailable: {detail}")
            metrics.observe_attempt(self.name, ErrorKind.UNAVAILABLE.value, 0.0)
            return AttemptResult.failure(self.name, ErrorKind.UNAVAILABLE, detail)

        start = time.monotonic()
        try:
            message_id = await asyncio.wait_for(
                self._deliver(recipient, content, dict(metadata or {})),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            result = AttemptResult.failure(
                self.name, ErrorKind.TIMEOUT, f"no response within {timeout}s"
            )
        except ProviderTimeoutError as e:
            result = AttemptResult.failure(self.name, ErrorKind.TIMEOUT, str(e))
        except ProviderError as e:
            result = AttemptResult.failure(self.name, ErrorKind.PROVIDER_FAILURE, str(e))
        except Exception as e:  # noqa: BLE001
            logger.error(f"Unexpected error from {self.name} sending to {recipient}: {e}", exc_info=True)
            result = AttemptResult.failure(self.name, ErrorKind.PROVIDER_FAILURE, str(e) or type(e).__name__)
        else:
            result = AttemptResult.success(self.name, message_id)

        elapsed = time.monotonic() - start
        metrics.observe_attempt(self.name, result.outcome, elapsed)
        if result.ok:
            logger.info(f"{self.channel.value} sent to {recipient} via {self.name} (id: {message_id})")
        else:
            logger.warning(f"{self.name} failed for {recipient}: {result.error_detail}")
        return result

    @abstractmethod
    async def _deliver(
        self,
        recipient: str,
        content: RenderedContent,
        metadata: dict[str, Any],
    ) -> str | None:
        """Send the message and return the provider's message id."""
