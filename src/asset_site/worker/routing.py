from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence
from urllib.parse import SplitResult, urlsplit

from asset_site.config.models import StrategyName, StrategyRuleSettings
from asset_site.worker.models import NETWORK_FIRST

DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443}

# Receives the split URL and its lowercased path.
RulePredicate = Callable[[SplitResult, str], bool]


def normalize_origin(url: str) -> str:
    """``scheme://host[:port]`` with default ports dropped, lowercased."""
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    port = parts.port
    if port is None or DEFAULT_PORTS.get(scheme) == port:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


def hostname_of(url: str) -> str:
    return (urlsplit(url).hostname or "").lower()


@dataclass(frozen=True, slots=True)
class StrategyRule:
    predicate: RulePredicate
    strategy: StrategyName
    description: str

    def matches(self, parts: SplitResult, path: str) -> bool:
        return self.predicate(parts, path)


def extension_rule(extension: str, strategy: StrategyName) -> StrategyRule:
    ext = extension.lower()
    return StrategyRule(lambda _parts, path: path.endswith(ext), strategy, f"extension {ext}")


def prefix_rule(prefix: str, strategy: StrategyName) -> StrategyRule:
    value = prefix.lower()
    return StrategyRule(lambda _parts, path: path.startswith(value), strategy, f"prefix {value}")


def contains_rule(fragment: str, strategy: StrategyName) -> StrategyRule:
    value = fragment.lower()
    return StrategyRule(lambda _parts, path: value in path, strategy, f"contains {value}")


def scheme_rule(scheme: str, strategy: StrategyName) -> StrategyRule:
    value = scheme.lower()
    return StrategyRule(lambda parts, _path: parts.scheme.lower() == value, strategy, f"scheme {value}")


_RULE_BUILDERS: dict[str, Callable[[str, StrategyName], StrategyRule]] = {
    "extension": extension_rule,
    "prefix": prefix_rule,
    "contains": contains_rule,
    "scheme": scheme_rule,
}


class StrategyTable:
    """Ordered (predicate, strategy) pairs; the first matching rule wins."""

    def __init__(self, rules: Sequence[StrategyRule], default: StrategyName = NETWORK_FIRST):
        self.rules = tuple(rules)
        self.default = default

    @classmethod
    def from_settings(
        cls, rules: Sequence[StrategyRuleSettings], default: StrategyName = NETWORK_FIRST
    ) -> StrategyTable:
        return cls([_RULE_BUILDERS[rule.kind](rule.pattern, rule.strategy) for rule in rules], default)

    def select(self, url: str) -> StrategyName:
        parts = urlsplit(url)
        path = parts.path.lower()
        for rule in self.rules:
            if rule.matches(parts, path):
                return rule.strategy
        return self.default
