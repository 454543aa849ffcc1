"""Query parsing configuration.

QueryConfig is a frozen dataclass, immutable after creation and shared freely
between requests.
"""

from dataclasses import dataclass

from quail.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class QueryConfig:
    """Query parsing configuration. Immutable after creation.

    Override what you need::

        config = QueryConfig(separator=";")
    """

    # Splitting
    separator: str = "&"  # Between pairs; "=" always separates key from value

    # ASGI
    state_key: str = "quail.state"  # Scope key holding the per-request State

    def __post_init__(self) -> None:
        if not self.separator:
            msg = "QueryConfig.separator must not be empty"
            raise ConfigurationError(msg)
        if "=" in self.separator:
            msg = f"QueryConfig.separator cannot contain '=': {self.separator!r}"
            raise ConfigurationError(msg)


DEFAULT_CONFIG = QueryConfig()
