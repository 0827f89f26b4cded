"""Doctrine ORM usage provider.

Doctrine calls listener, subscriber and lifecycle callback methods itself,
and instantiates entity repositories through its repository factory. None
of that is visible as a call site in user code.
"""
from dataclasses import dataclass
from typing import FrozenSet, Optional

from .base import UsageProvider
from ..analyzer.capability import CapabilityGate
from ..analyzer.descriptors import ClassDescriptor, MethodDescriptor
from ..analyzer.packages import PackageDetector

EVENT_SUBSCRIBER_INTERFACE = 'Doctrine\\Common\\EventSubscriber'
ENTITY_REPOSITORY_CLASS = 'Doctrine\\ORM\\EntityRepository'
ENTITY_LISTENER_ATTRIBUTE = 'Doctrine\\Bundle\\DoctrineBundle\\Attribute\\AsEntityListener'

LIFECYCLE_ATTRIBUTES = (
    'Doctrine\\ORM\\Mapping\\PostLoad',
    'Doctrine\\ORM\\Mapping\\PostPersist',
    'Doctrine\\ORM\\Mapping\\PostUpdate',
    'Doctrine\\ORM\\Mapping\\PostRemove',
    'Doctrine\\ORM\\Mapping\\PreFlush',
    'Doctrine\\ORM\\Mapping\\PrePersist',
    'Doctrine\\ORM\\Mapping\\PreRemove',
    'Doctrine\\ORM\\Mapping\\PreUpdate',
)

# Doctrine\ORM\Events::*
LISTENER_METHOD_NAMES = frozenset({
    'preRemove',
    'postRemove',
    'prePersist',
    'postPersist',
    'preUpdate',
    'postUpdate',
    'postLoad',
    'loadClassMetadata',
    'onClassMetadataNotFound',
    'preFlush',
    'onFlush',
    'postFlush',
    'onClear',
})


@dataclass(frozen=True)
class EventSubscriberRule:
    """Every method of an EventSubscriber implementation.

    Simplification: exact subscriptions live in getSubscribedEvents(), whose
    body we would have to interpret. Marking the whole class keeps
    unsubscribed methods alive too.
    """
    name: str = 'doctrine.event_subscriber'

    def matches(self, class_descriptor: ClassDescriptor, method: MethodDescriptor) -> bool:
        return class_descriptor.implements(EVENT_SUBSCRIBER_INTERFACE)


@dataclass(frozen=True)
class LifecycleAttributeRule:
    """Methods carrying a lifecycle callback attribute such as #[ORM\\PostLoad]."""
    gate: CapabilityGate
    attributes: tuple = LIFECYCLE_ATTRIBUTES
    name: str = 'doctrine.lifecycle_attribute'

    def matches(self, class_descriptor: ClassDescriptor, method: MethodDescriptor) -> bool:
        if not self.gate.supports_declarative_metadata():
            return False
        return any(method.has_tag(attribute) for attribute in self.attributes)


@dataclass(frozen=True)
class EntityListenerRule:
    """Methods named by an #[AsEntityListener] attribute on their class.

    The method name is the ``method`` argument, else the second positional
    argument. A class may register several methods, one per attribute.
    """
    gate: CapabilityGate
    name: str = 'doctrine.entity_listener'

    def matches(self, class_descriptor: ClassDescriptor, method: MethodDescriptor) -> bool:
        if not self.gate.supports_declarative_metadata():
            return False
        for tag in class_descriptor.tags_named(ENTITY_LISTENER_ATTRIBUTE):
            if tag.argument('method', 1) == method.name:
                return True
        return False


@dataclass(frozen=True)
class RepositoryConstructorRule:
    """Constructors of EntityRepository subclasses (built by the repository factory)."""
    name: str = 'doctrine.repository_constructor'

    def matches(self, class_descriptor: ClassDescriptor, method: MethodDescriptor) -> bool:
        if not method.is_constructor:
            return False
        return class_descriptor.is_subclass_of(ENTITY_REPOSITORY_CLASS)


@dataclass(frozen=True)
class ListenerNameRule:
    """Methods named after a Doctrine event, regardless of their class.

    Listeners registered in service configuration (XML/YAML tags) cannot be
    seen here, so any method named like an event is kept. Unrelated methods
    sharing these names are kept as well.
    """
    method_names: FrozenSet[str] = LISTENER_METHOD_NAMES
    name: str = 'doctrine.listener_name'

    def matches(self, class_descriptor: ClassDescriptor, method: MethodDescriptor) -> bool:
        return method.name in self.method_names


class DoctrineUsageProvider(UsageProvider):
    """Marks methods that Doctrine ORM invokes by convention."""

    name = 'doctrine'
    related_packages = (
        'doctrine/orm',
        'doctrine/event-manager',
        'doctrine/doctrine-bundle',
    )

    def __init__(self, enabled: Optional[bool] = None, gate: Optional[CapabilityGate] = None,
                 packages: Optional[PackageDetector] = None):
        """Initialize the provider.

        Args:
            enabled: Explicit switch, or None to infer from installed Doctrine packages
            gate: Attribute capability of the analyzed runtime (defaults to PHP 8.0+)
            packages: Package detector used when enabled is None
        """
        self.gate = gate or CapabilityGate(CapabilityGate.ATTRIBUTES_MIN_VERSION_ID)
        super().__init__(
            rules=(
                EventSubscriberRule(),
                LifecycleAttributeRule(self.gate),
                RepositoryConstructorRule(),
                EntityListenerRule(self.gate),
                ListenerNameRule(),
            ),
            enabled=enabled,
            packages=packages,
        )
