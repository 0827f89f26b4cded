"""Provider registry: the analyzer-facing composition point."""
from typing import Iterable, List, Optional

from .base import UsageProvider, Verdict
from ..analyzer.descriptors import ClassDescriptor, MethodDescriptor, same_class_name


class ProviderRegistry:
    """ORs the verdicts of every registered usage provider.

    Supporting a new framework means registering another provider; existing
    providers are left untouched. Registration happens at start-up, queries
    afterwards are read-only.
    """

    def __init__(self, providers: Iterable[UsageProvider] = ()):
        self._providers: List[UsageProvider] = list(providers)

    def register(self, provider: UsageProvider) -> 'ProviderRegistry':
        self._providers.append(provider)
        return self

    @property
    def providers(self) -> List[UsageProvider]:
        return list(self._providers)

    def is_used_by_any_provider(self, method: MethodDescriptor) -> bool:
        return any(provider.should_mark_as_used(method) for provider in self._providers)

    def is_member_used(self, class_descriptor: ClassDescriptor, method: MethodDescriptor) -> bool:
        """Decide whether a dead-code finding for this member should be suppressed.

        Args:
            class_descriptor: Class the finding is reported against
            method: Member without a direct call site

        Returns:
            True to suppress the finding, False to let it stand

        Raises:
            ValueError: If the method has no declaring class, or belongs to
                a different class than the one given
        """
        if method.declaring_class is None:
            raise ValueError(f"Method {method.name!r} has no declaring class")
        if not same_class_name(method.declaring_class.name, class_descriptor.name):
            raise ValueError(
                f"Method {method.qualified_name} is not declared by {class_descriptor.name}"
            )
        return self.is_used_by_any_provider(method)

    def explain(self, method: MethodDescriptor) -> Optional[Verdict]:
        """First positive verdict across providers, or None if no provider claims the method."""
        for provider in self._providers:
            verdict = provider.evaluate(method)
            if verdict.used:
                return verdict
        return None
