"""Ordered candidate evaluation for provider calls with early exit."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from portfolio_lens.providers.http import ProviderError
from portfolio_lens.services.base import ErrorEnvelope, ServiceContext, ServiceResult, envelope_from_provider_error
from portfolio_lens.services.provider_status import ProviderStatus

T = TypeVar("T")
LOGGER = logging.getLogger(__name__)
RATE_LIMIT_PATTERNS = (
    "rate limit",
    "too many requests",
    "limit exceeded",
)
DEFAULT_RATE_LIMIT_DISABLE_SECONDS = 60 * 15


@dataclass(frozen=True)
class CandidateAttempt(Generic[T]):
    provider: str
    symbol: str
    call: Callable[[], T | None]


Acceptance = Callable[[T, CandidateAttempt[T]], bool]


class FallbackManager:
    """Runs blocking attempts off the event loop until one is accepted.

    Each attempt is paced by the context's rate limiter and bounded by the
    request timeout. Provider errors, timeouts and unexpected exceptions are
    logged and treated as "no data from this attempt".
    """

    def __init__(
        self,
        ctx: ServiceContext,
        provider_status: ProviderStatus,
        rate_limit_disable_seconds: dict[str, int] | None = None,
    ) -> None:
        self._ctx = ctx
        self._provider_status = provider_status
        self._rate_limit_disable_seconds = rate_limit_disable_seconds or {}

    @property
    def provider_status(self) -> ProviderStatus:
        return self._provider_status

    async def first_accepted(
        self,
        operation: str,
        symbol: str,
        attempts: list[CandidateAttempt[T]],
        accept: Acceptance[T] | None = None,
    ) -> ServiceResult[T]:
        had_fallback = False
        last_error: ErrorEnvelope | None = None
        timeout = self._ctx.settings.request_timeout_seconds
        for attempt in attempts:
            if self._provider_status.is_disabled(attempt.provider):
                had_fallback = True
                LOGGER.info(
                    "provider skipped (disabled window): op=%s symbol=%s candidate=%s provider=%s disabled_until=%s",
                    operation,
                    symbol,
                    attempt.symbol,
                    attempt.provider,
                    self._provider_status.get_disabled_until(attempt.provider),
                )
                continue

            started = time.perf_counter()
            try:
                value = await asyncio.wait_for(asyncio.to_thread(self._invoke, attempt), timeout=timeout)
                accepted = value is not None and (accept is None or accept(value, attempt))
                LOGGER.info(
                    "provider attempt complete: op=%s symbol=%s candidate=%s provider=%s found=%s accepted=%s latency_ms=%s",
                    operation,
                    symbol,
                    attempt.symbol,
                    attempt.provider,
                    value is not None,
                    accepted,
                    _elapsed_ms(started),
                )
                if accepted:
                    warning = "Used fallback candidate or provider." if had_fallback else None
                    return ServiceResult(
                        data=value,
                        source=attempt.provider,
                        symbol=attempt.symbol,
                        warning=warning,
                        fetched_at=time.time(),
                    )
                had_fallback = True
            except ProviderError as error:
                had_fallback = True
                last_error = envelope_from_provider_error(error)
                LOGGER.warning(
                    "provider attempt failed: op=%s symbol=%s candidate=%s provider=%s code=%s status=%s latency_ms=%s",
                    operation,
                    symbol,
                    attempt.symbol,
                    attempt.provider,
                    error.code,
                    error.status,
                    _elapsed_ms(started),
                )
                if self.is_rate_limited(error):
                    ttl_seconds = self._rate_limit_disable_seconds.get(
                        attempt.provider, DEFAULT_RATE_LIMIT_DISABLE_SECONDS
                    )
                    disabled_until = self._provider_status.disable_provider(attempt.provider, ttl_seconds)
                    LOGGER.warning(
                        "provider disabled after rate limit: provider=%s disabled_until=%s op=%s symbol=%s",
                        attempt.provider,
                        disabled_until,
                        operation,
                        symbol,
                    )
            except asyncio.TimeoutError:
                had_fallback = True
                last_error = ErrorEnvelope(code="TIMEOUT", message=f"{operation} timed out.", provider=attempt.provider)
                LOGGER.warning(
                    "provider attempt timed out: op=%s symbol=%s candidate=%s provider=%s timeout_s=%s",
                    operation,
                    symbol,
                    attempt.symbol,
                    attempt.provider,
                    timeout,
                )
            except Exception:
                had_fallback = True
                last_error = ErrorEnvelope(code="UPSTREAM", message=f"{operation} failed.", provider=attempt.provider)
                LOGGER.exception(
                    "provider attempt unexpected failure: op=%s symbol=%s candidate=%s provider=%s latency_ms=%s",
                    operation,
                    symbol,
                    attempt.symbol,
                    attempt.provider,
                    _elapsed_ms(started),
                )

        return ServiceResult(
            data=None,
            error=last_error
            or ErrorEnvelope(code="NOT_FOUND", message=f"No candidate satisfied {operation}.", retriable=False),
        )

    def _invoke(self, attempt: CandidateAttempt[T]) -> T | None:
        self._ctx.rate_limiter.wait(attempt.provider)
        return attempt.call()

    @staticmethod
    def is_rate_limited(error: ProviderError) -> bool:
        if error.code == "RATE_LIMIT" or error.status == 429:
            return True
        message = (error.message or "").lower()
        return any(pattern in message for pattern in RATE_LIMIT_PATTERNS)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
