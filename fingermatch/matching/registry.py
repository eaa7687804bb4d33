"""
Matcher registry.

Maps matcher identifiers to factories so that callers (the CLI, tests)
can choose an implementation by name at construction time.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from fingermatch.matching.hybrid_matcher import HybridMatcher
from fingermatch.matching.interface import BaseMatcher
from fingermatch.matching.ncc_matcher import NCCMatcher
from fingermatch.utils.config import Config


MatcherFactory = Callable[[Config], BaseMatcher]


@dataclass(frozen=True)
class MatcherInfo:
    """
    Registry entry for one matcher implementation.

    Attributes:
        id: Identifier used on the command line and in reports
        name: Display name
        description: One-line summary of how candidates are scored
        category: "hybrid" or "baseline"
        factory: Builds a configured matcher from a Config
    """
    id: str
    name: str
    description: str
    category: str
    factory: MatcherFactory


class MatcherRegistry:
    """
    Process-wide table of matcher factories.

    There is a single instance; constructing the class again returns it.
    """

    _instance: Optional["MatcherRegistry"] = None
    _matchers: Dict[str, MatcherInfo]

    def __new__(cls) -> "MatcherRegistry":
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._matchers = {}
            instance._defaults_loaded = False
            cls._instance = instance
        return cls._instance

    def register(
        self,
        matcher_id: str,
        name: str,
        description: str,
        category: str,
        factory: MatcherFactory,
    ) -> None:
        """
        Add or replace a matcher entry.

        Args:
            matcher_id: Identifier; an existing entry with the same id is replaced
            name: Display name
            description: One-line summary
            category: "hybrid" or "baseline"
            factory: Callable taking a Config and returning a BaseMatcher
        """
        self._matchers[matcher_id] = MatcherInfo(
            id=matcher_id,
            name=name,
            description=description,
            category=category,
            factory=factory,
        )

    def unregister(self, matcher_id: str) -> None:
        """Drop an entry; unknown ids are ignored."""
        self._matchers.pop(matcher_id, None)

    def get_matcher_info(self, matcher_id: str) -> Optional[MatcherInfo]:
        return self._matchers.get(matcher_id)

    def list_matchers(self) -> List[MatcherInfo]:
        """Registered entries in registration order."""
        return list(self._matchers.values())

    def is_registered(self, matcher_id: str) -> bool:
        return matcher_id in self._matchers

    def create_matcher(
        self,
        matcher_id: str,
        config: Optional[Config] = None
    ) -> BaseMatcher:
        """
        Build a matcher by id.

        Args:
            matcher_id: Registered identifier
            config: Configuration handed to the factory (defaults if None)

        Returns:
            Configured matcher

        Raises:
            KeyError: If no matcher is registered under matcher_id
        """
        if matcher_id not in self._matchers:
            raise KeyError(
                f"Unknown matcher '{matcher_id}'. "
                f"Available: {sorted(self._matchers)}"
            )
        return self._matchers[matcher_id].factory(config or Config())

    def clear(self) -> None:
        """Remove every entry, built-in matchers included."""
        self._matchers.clear()
        self._defaults_loaded = False


def _register_builtin_matchers(registry: MatcherRegistry) -> None:
    registry.register(
        matcher_id="hybrid",
        name="Hybrid",
        description="Orientation, Gabor, frequency, texture and pixel fusion",
        category="hybrid",
        factory=HybridMatcher.from_config,
    )
    registry.register(
        matcher_id="ncc",
        name="NCC",
        description="Normalized cross-correlation baseline",
        category="baseline",
        factory=NCCMatcher.from_config,
    )


def get_registry() -> MatcherRegistry:
    """
    Return the shared registry, loading the built-in matchers on first use.

    Returns:
        MatcherRegistry containing at least "hybrid" and "ncc"
    """
    registry = MatcherRegistry()
    if not registry._defaults_loaded:
        _register_builtin_matchers(registry)
        registry._defaults_loaded = True
    return registry


def create_matcher(matcher_id: str, config: Optional[Config] = None) -> BaseMatcher:
    """
    Build a registered matcher.

    Args:
        matcher_id: Matcher identifier ("hybrid", "ncc", ...)
        config: Configuration (defaults if None)

    Returns:
        BaseMatcher instance
    """
    return get_registry().create_matcher(matcher_id, config)
