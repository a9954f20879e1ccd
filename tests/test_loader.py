import pytest

from credmask.core.errors import ConfigurationError
from credmask.core.loader import discover_strategies, select_strategy
from credmask.strategies.literal import LiteralStrategy
from credmask.strategies.span import SpanStrategy


def test_discovers_builtin_strategies():
    strategies = discover_strategies()
    assert isinstance(strategies["span"], SpanStrategy)
    assert isinstance(strategies["literal"], LiteralStrategy)
    assert "base" not in strategies


def test_select_strategy():
    strategies = discover_strategies()
    assert select_strategy(strategies, " SPAN ") is strategies["span"]
    with pytest.raises(ConfigurationError):
        select_strategy(strategies, "regex")
