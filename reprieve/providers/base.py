"""Usage provider building blocks.

A usage provider answers one question for a method that has no direct call
site: does some framework invoke it anyway? Each provider owns an ordered
tuple of independent rules; the first rule that matches decides.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

from ..analyzer.descriptors import ClassDescriptor, MethodDescriptor
from ..analyzer.packages import PackageDetector
from ..utils.console import log_debug


class UsageRule(Protocol):
    """One invocation convention, as a pure predicate over (class, method)."""

    name: str

    def matches(self, class_descriptor: ClassDescriptor, method: MethodDescriptor) -> bool:
        ...


@dataclass(frozen=True)
class Verdict:
    """Outcome of a provider evaluation; rule names the first matching rule."""
    used: bool
    provider: str
    rule: Optional[str] = None


@dataclass(frozen=True)
class MethodUsage:
    """A method a provider marks as used, found while scanning a class."""
    class_name: str
    method_name: str
    provider: str
    rule: str


class UsageProvider:
    """Evaluates an ordered rule tuple behind an enabled switch.

    The switch is fixed at construction. When ``enabled`` is None it is
    inferred once: the provider turns on if any of ``related_packages`` is
    installed according to ``packages``.
    """

    name = 'base'
    related_packages: Tuple[str, ...] = ()

    def __init__(self, rules: Sequence[UsageRule], enabled: Optional[bool] = None,
                 packages: Optional[PackageDetector] = None):
        """Initialize the provider.

        Args:
            rules: Rules evaluated in order
            enabled: Explicit switch, or None to infer from installed packages
            packages: Package detector used for inference

        Raises:
            ValueError: If enabled is None and no package detector is given
        """
        self.rules: Tuple[UsageRule, ...] = tuple(rules)
        if enabled is None:
            if packages is None:
                raise ValueError(
                    f"{self.name} provider: enabled is unset and no package detector was given"
                )
            enabled = any(packages.is_installed(package) for package in self.related_packages)
            log_debug(
                "UsageProvider",
                f"{self.name} {'enabled' if enabled else 'disabled'} by installed-package check"
            )
        self._enabled = bool(enabled)

    @property
    def enabled(self) -> bool:
        return self._enabled

    def evaluate(self, method: MethodDescriptor) -> Verdict:
        """Run the rules against a method and report which one matched."""
        if not self._enabled:
            return Verdict(used=False, provider=self.name)

        class_descriptor = method.declaring_class
        for rule in self.rules:
            if rule.matches(class_descriptor, method):
                return Verdict(used=True, provider=self.name, rule=rule.name)
        return Verdict(used=False, provider=self.name)

    def should_mark_as_used(self, method: MethodDescriptor) -> bool:
        return self.evaluate(method).used

    def collect_usages(self, class_descriptor: ClassDescriptor,
                       methods: Iterable[MethodDescriptor]) -> List[MethodUsage]:
        """Scan a class's methods and return those this provider marks as used.

        Args:
            class_descriptor: Class being visited
            methods: Methods declared by that class

        Returns:
            One MethodUsage per used method, in input order
        """
        if not self._enabled:
            return []

        usages = []
        for method in methods:
            verdict = self.evaluate(method)
            if verdict.used:
                usages.append(MethodUsage(
                    class_name=class_descriptor.name,
                    method_name=method.name,
                    provider=self.name,
                    rule=verdict.rule,
                ))
        return usages

    def __repr__(self) -> str:
        return f"{type(self).__name__}(enabled={self._enabled}, rules={len(self.rules)})"
