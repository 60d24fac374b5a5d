"""First-success-wins resolution over an ordered provider chain."""

import dataclasses
import logging
from typing import Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

from ..models.result import (
    ESTIMATED,
    Attempt,
    Resolution,
    Unavailable,
    UnavailableReason,
)
from ..providers.base import ProviderAdapter
from ..utils.errors import AllProvidersExhausted, ConfigurationError

logger = logging.getLogger(__name__)

I = TypeVar("I")
T = TypeVar("T")


class FallbackResolver(Generic[I, T]):
    """
    Resolves one capability by trying providers in priority order.

    The first provider that returns a value wins; the value is stamped with
    the provider's name and fixed confidence. When every provider is
    unavailable the synthetic estimate is returned, stamped ``estimated``
    at ``estimate_confidence``. No provider is tried twice in one
    resolution and the resolver keeps no state between calls.

    Args:
        capability: Name used in logs and errors (geocoding, solar, ...)
        tiers: (adapter, confidence) pairs, highest priority first
        synthesize: Builds the offline estimate from the request
        estimate_confidence: Confidence attached to the estimate

    Raises:
        ConfigurationError: If confidences are out of range or increase
            along the chain, or the estimate outranks the last provider
    """

    def __init__(
        self,
        capability: str,
        tiers: Sequence[Tuple[ProviderAdapter, float]],
        synthesize: Callable[[I], T],
        estimate_confidence: float
    ):
        self.capability = capability
        self.tiers = tuple(tiers)
        self.synthesize = synthesize
        self.estimate_confidence = estimate_confidence
        self._validate()

    def _validate(self) -> None:
        weights = [confidence for _, confidence in self.tiers] + [self.estimate_confidence]
        for weight in weights:
            if not 0.0 <= weight <= 1.0:
                raise ConfigurationError.invalid(
                    f"{self.capability}: confidence {weight} outside [0, 1]",
                    capability=self.capability,
                )
        for (adapter, higher), lower in zip(self.tiers, weights[1:]):
            if lower > higher:
                raise ConfigurationError.invalid(
                    f"{self.capability}: confidence must not increase along the fallback "
                    f"chain ({adapter.name}={higher} is followed by {lower})",
                    capability=self.capability,
                )

    @property
    def provider_names(self) -> List[str]:
        return [adapter.name for adapter, _ in self.tiers]

    async def resolve(
        self,
        request: I,
        attempts: Optional[List[Attempt]] = None
    ) -> Resolution[T]:
        """
        Try each provider once, in order.

        Args:
            request: Capability-specific input passed to every adapter
            attempts: Optional list the attempts are appended to as they
                complete, so a caller that cancels the resolution still
                knows which providers were tried

        Returns:
            Resolution carrying the stamped value and the attempts made
        """
        if attempts is None:
            attempts = []

        for index, (adapter, confidence) in enumerate(self.tiers):
            logger.debug(f"{self.capability}: trying provider {index} ({adapter.name})")

            try:
                result = await adapter.call(request)
            except Exception as e:
                logger.exception(f"{self.capability}: provider {adapter.name} raised unexpectedly")
                result = Unavailable(
                    provider=adapter.name,
                    reason=UnavailableReason.MALFORMED_RESPONSE,
                    detail=f"{type(e).__name__}: {e}",
                )

            if isinstance(result, Unavailable):
                attempts.append(Attempt(adapter.name, result.describe(), result.detail))
                continue

            attempts.append(Attempt(adapter.name, "success"))
            logger.info(
                f"{self.capability}: resolved by {adapter.name} "
                f"(confidence={confidence}, attempts={len(attempts)})"
            )
            return Resolution(
                value=self._stamp(result, adapter.name, confidence),
                provider=adapter.name,
                confidence=confidence,
                attempts=tuple(attempts),
            )

        error = AllProvidersExhausted.for_capability(
            self.capability, [dataclasses.asdict(a) for a in attempts]
        )
        logger.warning(f"{self.capability}: all providers exhausted: {error}")
        return self.estimate(request, attempts=tuple(attempts))

    def estimate(
        self,
        request: I,
        attempts: Tuple[Attempt, ...] = (),
        timed_out: bool = False
    ) -> Resolution[T]:
        """Build the synthetic fallback for ``request`` without calling any provider."""
        value = self._stamp(self.synthesize(request), ESTIMATED, self.estimate_confidence)
        return Resolution(
            value=value,
            provider=ESTIMATED,
            confidence=self.estimate_confidence,
            estimated=True,
            attempts=attempts,
            timed_out=timed_out,
        )

    @staticmethod
    def _stamp(value: T, provider: str, confidence: float) -> T:
        return dataclasses.replace(value, confidence=confidence, source_provider=provider)
