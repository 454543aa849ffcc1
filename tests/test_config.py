"""Tests for quail.config: QueryConfig frozen dataclass."""

import pytest

from quail.config import DEFAULT_CONFIG, QueryConfig
from quail.errors import ConfigurationError


class TestQueryConfig:
    def test_defaults(self) -> None:
        cfg = QueryConfig()

        assert cfg.separator == "&"
        assert cfg.state_key == "quail.state"
        assert cfg == DEFAULT_CONFIG

    def test_override(self) -> None:
        cfg = QueryConfig(separator=";", state_key="query")

        assert cfg.separator == ";"
        assert cfg.state_key == "query"

    def test_frozen(self) -> None:
        cfg = QueryConfig()

        with pytest.raises(AttributeError):
            cfg.separator = ";"  # type: ignore[misc]

    @pytest.mark.parametrize("separator", ["", "=", "&="])
    def test_invalid_separator(self, separator: str) -> None:
        with pytest.raises(ConfigurationError):
            QueryConfig(separator=separator)
