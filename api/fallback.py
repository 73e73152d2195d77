"""
Ordered fallback chains.

A stage holds a list of strategies. Each strategy exposes ``name`` and
``attempt(*args, **kwargs)``; ``attempt`` either returns the stage output or
raises ``TransientProviderError``. The chain returns the first success.
Strategies whose output is a stand-in rather than real work set
``degraded = True``; the last strategy of a chain is usually one of those.
"""
import logging
from typing import Any, Iterable, Protocol, Tuple

from .exceptions import TransientProviderError

logger = logging.getLogger(__name__)


class Strategy(Protocol):
    name: str
    degraded: bool

    def attempt(self, *args, **kwargs) -> Any:
        ...


def first_success(strategies: Iterable[Strategy], *args, **kwargs) -> Tuple[Any, str, bool]:
    """
    Run strategies in order and return ``(output, strategy_name, degraded)``.

    ``degraded`` is the winning strategy's own flag. Raises the last
    ``TransientProviderError`` if every strategy failed.
    """
    last_error = None
    for strategy in strategies:
        try:
            output = strategy.attempt(*args, **kwargs)
        except TransientProviderError as e:
            logger.warning("%s failed: %s", strategy.name, e)
            last_error = e
            continue
        degraded = getattr(strategy, "degraded", False)
        if degraded:
            logger.warning("Using degraded output from %s", strategy.name)
        return output, strategy.name, degraded
    if last_error is None:
        raise TransientProviderError("no strategies configured")
    raise last_error
