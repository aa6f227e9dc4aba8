"""Per-channel fallback chain over provider adapters."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from .delivery import AttemptResult, ErrorKind, NotificationChannel, RenderedContent, SendOutcome
from .exceptions import ConfigurationError
from .ports.adapter import IProviderAdapter

logger = logging.getLogger(__name__)


class ChannelSender:
    """
    Tries the adapters of one channel in order until one accepts the message.

    Attempts are strictly sequential. The optional *fallback* adapter (normally
    a :class:`~notification_dispatch.memory.SimulatedAdapter`) is tried only
    when every real adapter reported ``UNAVAILABLE``, i.e. nothing real is
    configured for the channel.

    If the surrounding task is cancelled mid-attempt, the chain stops and a
    ``CANCELLED`` outcome is returned. Callers that see
    :attr:`SendOutcome.cancelled` must re-raise :class:`asyncio.CancelledError`
    once they have recorded it.
    """

    def __init__(
        self,
        channel: NotificationChannel,
        adapters: Sequence[IProviderAdapter],
        *,
        fallback: IProviderAdapter | None = None,
        attempt_timeout: float = 10.0,
    ) -> None:
        if not adapters and fallback is None:
            raise ConfigurationError(f"No adapters configured for channel {channel.value}")
        for adapter in adapters:
            if adapter.channel is not channel:
                raise ConfigurationError(
                    f"Adapter {adapter.name} serves {adapter.channel.value}, not {channel.value}"
                )
        if attempt_timeout <= 0:
            raise ConfigurationError("attempt_timeout must be positive")
        self.channel = channel
        self.adapters = list(adapters)
        self.fallback = fallback
        self.attempt_timeout = attempt_timeout

    @property
    def provider_names(self) -> list[str]:
        names = [adapter.name for adapter in self.adapters]
        if self.fallback is not None:
            names.append(self.fallback.name)
        return names

    async def send(
        self,
        recipient: str,
        content: RenderedContent,
        *,
        timeout: float | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> SendOutcome:
        per_attempt = timeout if timeout is not None else self.attempt_timeout
        attempts: list[AttemptResult] = []

        for adapter in self.adapters:
            result = await self._attempt(adapter, recipient, content, per_attempt, metadata, attempts)
            if result is None or result.ok:
                return self._finish(attempts)

        if self.fallback is not None and all(
            a.error_kind is ErrorKind.UNAVAILABLE for a in attempts
        ):
            logger.info(
                f"No {self.channel.value} provider configured, using {self.fallback.name}"
            )
            await self._attempt(self.fallback, recipient, content, per_attempt, metadata, attempts)

        return self._finish(attempts)

    async def _attempt(
        self,
        adapter: IProviderAdapter,
        recipient: str,
        content: RenderedContent,
        timeout: float,
        metadata: Mapping[str, Any] | None,
        attempts: list[AttemptResult],
    ) -> AttemptResult | None:
        """Run one attempt; ``None`` means the chain was cancelled."""
        try:
            result = await adapter.attempt(recipient, content, timeout=timeout, metadata=metadata)
        except asyncio.CancelledError:
            logger.warning(f"{self.channel.value} send to {recipient} cancelled during {adapter.name}")
            attempts.append(
                AttemptResult.failure(adapter.name, ErrorKind.CANCELLED, "dispatch cancelled")
            )
            return None
        attempts.append(result)
        return result

    def _finish(self, attempts: list[AttemptResult]) -> SendOutcome:
        last = attempts[-1]
        if last.ok:
            return SendOutcome(
                ok=True,
                provider=last.provider,
                provider_message_id=last.provider_message_id,
                attempts=tuple(attempts),
            )
        detail = "; ".join(f"{a.provider}: {a.error_detail}" for a in attempts)
        if last.error_kind is ErrorKind.CANCELLED:
            kind = ErrorKind.CANCELLED
        elif all(a.error_kind is ErrorKind.UNAVAILABLE for a in attempts):
            kind = ErrorKind.UNAVAILABLE
        else:
            kind = last.error_kind or ErrorKind.PROVIDER_FAILURE
        return SendOutcome(
            ok=False,
            provider=last.provider,
            error_kind=kind,
            error_detail=detail,
            attempts=tuple(attempts),
        )
