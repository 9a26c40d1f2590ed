"""
Ordered fallback over alternative ways of obtaining the same value.

Every fallback site in the application (two candidate directories for the
Settings archive, two descriptor files for the Gecko stamp, and manifest
versus descriptor for the Gecko revision) is expressed through
`first_success`.
"""

import logging
from typing import Awaitable, Callable, Iterable, List, Tuple, Type, TypeVar

from .exceptions import DomainError, FallbackExhaustedError, InfrastructureError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Attempt = Callable[[], Awaitable[T]]

RECOVERABLE_ERRORS: Tuple[Type[Exception], ...] = (
    InfrastructureError,
    DomainError,
)


async def first_success(
    attempts: Iterable[Attempt[T]],
    description: str = "candidates",
    recoverable: Tuple[Type[Exception], ...] = RECOVERABLE_ERRORS,
) -> T:
    """Awaits each attempt in order and returns the first result.

    An attempt is only started once the previous one has failed. Errors
    outside `recoverable` propagate immediately without trying the rest.

    Args:
        attempts: Zero-argument callables returning awaitables.
        description: Plural noun naming the attempts, used in messages.
        recoverable: Exception types that mean "try the next one".

    Returns:
        The value produced by the first attempt that did not raise.

    Raises:
        FallbackExhaustedError: If every attempt failed. The last failure
                                is chained as the cause.
    """

    errors: List[Exception] = []

    for index, attempt in enumerate(attempts, start=1):
        logger.debug(f"Trying {description} #{index}...")
        try:
            return await attempt()
        except recoverable as e:
            logger.info(
                f"Attempt #{index} of {description} failed: "
                f"{type(e).__name__}: {e}"
            )
            errors.append(e)

    raise FallbackExhaustedError(description, errors) from (
        errors[-1] if errors else None
    )
