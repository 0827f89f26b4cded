"""Read-only structural metadata handed to usage rules.

Descriptors are immutable snapshots produced by the metadata accessor
(see metadata.ClassIndex). Rules only ever read them.
"""
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Optional, Tuple


def normalize_class_name(name: str) -> str:
    """Strip the leading namespace separator from a class name."""
    return name.lstrip('\\')


def same_class_name(left: str, right: str) -> bool:
    """PHP class names compare case-insensitively."""
    return normalize_class_name(left).lower() == normalize_class_name(right).lower()


@dataclass(frozen=True)
class MetadataTag:
    """A declarative attribute such as ``#[AsEntityListener(event: 'x', method: 'y')]``.

    Arguments that are not plain literals are stored as None.
    """
    name: str
    positional: Tuple[Any, ...] = ()
    keyed: Tuple[Tuple[str, Any], ...] = ()

    def is_named(self, name: str) -> bool:
        return same_class_name(self.name, name)

    def argument(self, key: str, position: int) -> Optional[Any]:
        """Look up an argument by name, falling back to its position.

        A keyed value of None counts as absent, so the positional value is
        used instead.

        Args:
            key: Named-argument key
            position: Zero-based positional index

        Returns:
            The argument value, or None if neither is present
        """
        for arg_key, value in self.keyed:
            if arg_key == key and value is not None:
                return value
        if 0 <= position < len(self.positional):
            return self.positional[position]
        return None


@dataclass(frozen=True)
class ClassDescriptor:
    """A declared type with its resolved hierarchy.

    interfaces is transitive: it includes interfaces of every ancestor and
    the parents of those interfaces. ancestors is ordered nearest first.
    """
    name: str
    interfaces: FrozenSet[str] = frozenset()
    ancestors: Tuple[str, ...] = ()
    tags: Tuple[MetadataTag, ...] = ()
    kind: str = 'class'

    def implements(self, interface: str) -> bool:
        return any(same_class_name(iface, interface) for iface in self.interfaces)

    def is_subclass_of(self, base: str) -> bool:
        """True if base is a strict ancestor (the class itself does not count)."""
        return any(same_class_name(ancestor, base) for ancestor in self.ancestors)

    def tags_named(self, name: str) -> Tuple[MetadataTag, ...]:
        return tuple(tag for tag in self.tags if tag.is_named(name))


@dataclass(frozen=True)
class MethodDescriptor:
    """A method within a ClassDescriptor."""
    name: str
    declaring_class: Optional[ClassDescriptor]
    is_constructor: bool = False
    tags: Tuple[MetadataTag, ...] = ()
    line: int = field(default=0, compare=False)

    def has_tag(self, name: str) -> bool:
        return any(tag.is_named(name) for tag in self.tags)

    @property
    def qualified_name(self) -> str:
        owner = self.declaring_class.name if self.declaring_class else '?'
        return f"{owner}::{self.name}"
