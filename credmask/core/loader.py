from __future__ import annotations
import importlib
import pkgutil
from typing import Dict, Type

from .errors import ConfigurationError
from ..strategies.base import ReplacementStrategy


def _discover_package_classes(pkg, base_cls) -> Dict[str, Type]:
    discovered: Dict[str, Type] = {}
    for m in pkgutil.iter_modules(pkg.__path__, pkg.__name__ + "."):
        module = importlib.import_module(m.name)
        for attr_name in dir(module):
            obj = getattr(module, attr_name)
            if isinstance(obj, type) and issubclass(obj, base_cls) and obj is not base_cls:
                name = getattr(obj, "NAME", obj.__name__).lower()
                discovered[name] = obj
    return discovered


def discover_strategies() -> Dict[str, ReplacementStrategy]:
    from .. import strategies as strategies_pkg  # lazy import
    classes = _discover_package_classes(strategies_pkg, ReplacementStrategy)
    return {name: cls() for name, cls in classes.items()}


def select_strategy(all_strategies: Dict[str, ReplacementStrategy], name: str) -> ReplacementStrategy:
    key = (name or "").strip().lower()
    try:
        return all_strategies[key]
    except KeyError:
        known = ", ".join(sorted(all_strategies)) or "none"
        raise ConfigurationError(f"unknown replacement strategy {name!r} (available: {known})") from None
