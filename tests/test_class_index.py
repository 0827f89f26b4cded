"""Integration tests for ClassIndex against a real Doctrine-style fixture project.

QA REQUIREMENT: every convention rule must be observed on parsed PHP,
not only on hand-built descriptors.
"""
from pathlib import Path

import pytest

from reprieve.analyzer.capability import CapabilityGate
from reprieve.analyzer.extractor import ClassDeclaration, MethodDeclaration
from reprieve.analyzer.metadata import ClassIndex
from reprieve.providers.doctrine import DoctrineUsageProvider
from reprieve.providers.registry import ProviderRegistry

# Fixture directory
FIXTURES_DIR = Path(__file__).parent / 'fixtures' / 'doctrine_app'


@pytest.fixture(scope='module')
def index():
    return ClassIndex.from_paths([FIXTURES_DIR])


@pytest.fixture(scope='module')
def vendor_index():
    return ClassIndex.from_paths([FIXTURES_DIR], include_vendor=True)


@pytest.fixture
def registry():
    return ProviderRegistry([
        DoctrineUsageProvider(enabled=True, gate=CapabilityGate.from_version_string('8.2')),
    ])


def used(registry, index, class_name, method_name):
    method = index.describe_method(class_name, method_name)
    assert method is not None, f"{class_name}::{method_name} missing from index"
    return registry.is_member_used(method.declaring_class, method)


class TestIndexing:
    def test_vendor_is_skipped_by_default(self, index):
        assert index.describe_class('Doctrine\\ORM\\EntityRepository') is None
        assert 'App\\Repository\\UserRepository' in index.class_names()

    def test_vendor_is_indexed_on_request(self, vendor_index):
        assert vendor_index.describe_class('Doctrine\\ORM\\EntityRepository') is not None

    def test_class_lookup_is_case_insensitive(self, index):
        descriptor = index.describe_class('\\app\\entity\\user')
        assert descriptor.name == 'App\\Entity\\User'

    def test_unknown_class_and_method(self, index):
        assert index.describe_class('App\\Missing') is None
        assert index.methods_of('App\\Missing') == []
        assert index.describe_method('App\\Entity\\User', 'missing') is None

    def test_methods_point_back_to_class(self, index):
        methods = index.methods_of('App\\Entity\\User')
        assert [m.name for m in methods] == ['stampCreatedAt', 'warmCache', 'getName']
        assert all(m.declaring_class.name == 'App\\Entity\\User' for m in methods)

    def test_other_php_extensions_are_indexed(self, tmp_path):
        (tmp_path / 'legacy.inc').write_text("<?php\nclass LegacyListener {}\n")
        (tmp_path / 'notes.txt').write_text("<?php\nclass NotPhp {}\n")
        index = ClassIndex.from_paths([tmp_path])
        assert index.class_names() == ['LegacyListener']

    def test_class_attributes_are_exposed(self, index):
        descriptor = index.describe_class('App\\EventListener\\UserListener')
        assert len(descriptor.tags) == 2


class TestHierarchy:
    def test_transitive_interfaces_through_ancestor_and_parent_interface(self, index):
        descriptor = index.describe_class('App\\EventSubscriber\\ChildAuditor')
        assert descriptor.ancestors == ('App\\EventSubscriber\\BaseAuditor',)
        assert descriptor.implements('App\\Contract\\AuditAware')
        assert descriptor.implements('Doctrine\\Common\\EventSubscriber')

    def test_undeclared_parent_still_in_chain(self, index):
        descriptor = index.describe_class('App\\Repository\\UserRepository')
        assert descriptor.ancestors == ('Doctrine\\ORM\\EntityRepository',)

    def test_vendor_extends_ancestor_chain(self, index, vendor_index):
        without_vendor = index.describe_class('App\\Repository\\PostRepository')
        with_vendor = vendor_index.describe_class('App\\Repository\\PostRepository')
        assert not without_vendor.is_subclass_of('Doctrine\\ORM\\EntityRepository')
        assert with_vendor.ancestors == (
            'Doctrine\\Bundle\\DoctrineBundle\\Repository\\ServiceEntityRepository',
            'Doctrine\\ORM\\EntityRepository',
        )
        assert with_vendor.implements('Doctrine\\Persistence\\ObjectRepository')

    def test_inheritance_cycle_terminates(self):
        index = ClassIndex()
        index.add(ClassDeclaration(name='A', kind='class', parents=['B']))
        index.add(ClassDeclaration(name='B', kind='class', parents=['A'], interfaces=['I']))
        descriptor = index.describe_class('A')
        assert descriptor.ancestors == ('B',)
        assert descriptor.interfaces == frozenset({'I'})

    def test_interface_implements_itself(self, vendor_index):
        index = ClassIndex()
        index.add(ClassDeclaration(name='Doctrine\\Common\\EventSubscriber', kind='interface'))
        index.add(ClassDeclaration(name='App\\Sub', kind='interface',
                                   parents=['Doctrine\\Common\\EventSubscriber']))
        assert index.describe_class('Doctrine\\Common\\EventSubscriber').interfaces == frozenset(
            {'Doctrine\\Common\\EventSubscriber'}
        )
        assert index.describe_class('App\\Sub').implements('App\\Sub')
        assert not vendor_index.describe_class('Doctrine\\ORM\\EntityRepository').implements(
            'Doctrine\\ORM\\EntityRepository'
        )

    def test_redeclaration_replaces_edges(self):
        index = ClassIndex()
        index.add(ClassDeclaration(name='A', kind='class', parents=['Old']))
        index.add(ClassDeclaration(name='A', kind='class', parents=['New']))
        assert index.describe_class('A').ancestors == ('New',)


class TestTraits:
    def test_trait_methods_belong_to_using_class(self, index):
        method = index.describe_method('App\\Entity\\Post', 'refreshTimestamps')
        assert method is not None
        assert method.declaring_class.name == 'App\\Entity\\Post'
        assert [t.name for t in method.tags] == [
            'Doctrine\\ORM\\Mapping\\PrePersist',
            'Doctrine\\ORM\\Mapping\\PreUpdate',
        ]

    def test_class_method_overrides_trait_method(self, index):
        names = [m.name for m in index.methods_of('App\\Entity\\Post')]
        assert names == ['getTitle', 'getUpdatedAt', 'refreshTimestamps']

    def test_trait_is_indexed_but_not_iterated(self, index):
        assert index.describe_class('App\\Entity\\Timestamps').kind == 'trait'
        assert index.describe_method('App\\Entity\\Timestamps', 'refreshTimestamps') is not None
        assert 'App\\Entity\\Timestamps' not in {c.name for c, _ in index.iter_methods()}

    def test_nested_trait_use_and_cycle(self):
        index = ClassIndex()
        index.add(ClassDeclaration(name='Inner', kind='trait', traits=['Outer'],
                                   methods=[MethodDeclaration('postLoad')]))
        index.add(ClassDeclaration(name='Outer', kind='trait', traits=['Inner'],
                                   methods=[MethodDeclaration('touch')]))
        index.add(ClassDeclaration(name='Entity', kind='class', traits=['Outer', 'Missing']))
        assert [m.name for m in index.methods_of('Entity')] == ['touch', 'postLoad']


class TestVerdictsOnFixtureProject:
    def test_lifecycle_callback_from_trait(self, registry, index):
        assert used(registry, index, 'App\\Entity\\Post', 'refreshTimestamps')
        assert not used(registry, index, 'App\\Entity\\Post', 'getUpdatedAt')

    def test_lifecycle_callbacks(self, registry, index):
        assert used(registry, index, 'App\\Entity\\User', 'stampCreatedAt')
        assert used(registry, index, 'App\\Entity\\User', 'warmCache')
        assert not used(registry, index, 'App\\Entity\\User', 'getName')

    def test_lifecycle_callbacks_ignored_before_php8(self, index):
        registry = ProviderRegistry([
            DoctrineUsageProvider(enabled=True, gate=CapabilityGate.from_version_string('7.4')),
        ])
        assert not used(registry, index, 'App\\Entity\\User', 'stampCreatedAt')

    def test_entity_listener_methods(self, registry, index):
        assert used(registry, index, 'App\\EventListener\\UserListener', 'sync')
        assert used(registry, index, 'App\\EventListener\\UserListener', 'refresh')
        assert not used(registry, index, 'App\\EventListener\\UserListener', 'other')

    def test_event_subscriber_methods(self, registry, index):
        for method_name in ('getSubscribedEvents', 'recordChange', 'helper'):
            assert used(registry, index, 'App\\EventSubscriber\\AuditSubscriber', method_name)
        assert used(registry, index, 'App\\EventSubscriber\\ChildAuditor', 'track')

    def test_repository_constructors(self, registry, index, vendor_index):
        assert used(registry, index, 'App\\Repository\\UserRepository', '__construct')
        assert not used(registry, index, 'App\\Repository\\UserRepository', 'findActive')
        assert not used(registry, index, 'App\\Repository\\PostRepository', '__construct')
        assert used(registry, vendor_index, 'App\\Repository\\PostRepository', '__construct')

    def test_listener_names(self, registry, index):
        assert used(registry, index, 'App\\Service\\Mailer', 'onFlush')
        assert not used(registry, index, 'App\\Service\\Mailer', 'send')

    def test_iter_methods_covers_project(self, index):
        pairs = list(index.iter_methods())
        assert ('App\\Service\\Mailer', 'send') in {(c.name, m.name) for c, m in pairs}
