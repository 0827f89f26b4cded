"""Class index: the metadata accessor that turns parsed declarations into descriptors."""
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

import networkx as nx

from .descriptors import ClassDescriptor, MethodDescriptor, normalize_class_name
from .extractor import ClassDeclaration, DeclarationExtractor, MethodDeclaration
from .parser import LanguageParser
from ..utils.console import log_debug


class ClassIndex:
    """Tracks declared classes and their extends/implements relationships.

    The hierarchy is a directed graph with an edge from each type to every
    type it extends, implements or uses; the edge ``kind`` attribute is
    'extends' (class -> parent class), 'implements' (class -> interface,
    interface -> parent interface) or 'uses' (class or trait -> trait).
    Nodes are lowercased names; the declared spelling is kept in
    ``display_names``.

    Types referenced but never declared (e.g. vendor classes not indexed)
    still appear as graph nodes, so they show up in the ancestor chain and
    interface set of their children.
    """

    EXCLUDED_DIRS = {
        'vendor', 'node_modules', 'var', 'cache', '.git', '.idea',
        'build', 'dist', '__pycache__', '.reprieve_cache'
    }

    def __init__(self):
        self.declarations: Dict[str, ClassDeclaration] = {}
        self.display_names: Dict[str, str] = {}
        self.graph = nx.DiGraph()

    @classmethod
    def from_paths(cls, paths: Iterable[Path], include_vendor: bool = False) -> 'ClassIndex':
        """Build an index by parsing every PHP file under the given roots.

        Args:
            paths: Files or directories to scan
            include_vendor: Also index vendor/ (gives full framework hierarchies)

        Returns:
            Populated ClassIndex
        """
        index = cls()
        parser = LanguageParser()
        extractor = DeclarationExtractor()
        excluded = cls.EXCLUDED_DIRS - {'vendor'} if include_vendor else cls.EXCLUDED_DIRS

        for root in paths:
            root = Path(root)
            if root.is_file():
                files = [root]
            else:
                files = sorted(p for p in root.rglob('*') if p.is_file() and LanguageParser.supports(p))
            for file_path in files:
                relative_parts = file_path.relative_to(root).parts if file_path != root else ()
                if any(part in excluded for part in relative_parts[:-1]):
                    continue
                tree = parser.parse_file(file_path)
                if tree is None:
                    log_debug("ClassIndex", f"Skipping unreadable file {file_path}")
                    continue
                for declaration in extractor.extract(tree, str(file_path)):
                    index.add(declaration)

        log_debug("ClassIndex", f"Indexed {len(index.declarations)} types")
        return index

    def _key(self, name: str) -> str:
        key = normalize_class_name(name).lower()
        self.display_names.setdefault(key, normalize_class_name(name))
        return key

    def add(self, declaration: ClassDeclaration):
        """Register a declaration and its hierarchy edges.

        A later declaration of the same name replaces the earlier one.
        """
        key = self._key(declaration.name)
        self.display_names[key] = normalize_class_name(declaration.name)
        self.declarations[key] = declaration

        if key in self.graph:
            self.graph.remove_edges_from(list(self.graph.out_edges(key)))
        self.graph.add_node(key)

        parent_kind = 'implements' if declaration.kind == 'interface' else 'extends'
        for parent in declaration.parents:
            self.graph.add_edge(key, self._key(parent), kind=parent_kind)
        for interface in declaration.interfaces:
            self.graph.add_edge(key, self._key(interface), kind='implements')
        for trait in declaration.traits:
            self.graph.add_edge(key, self._key(trait), kind='uses')

    def _targets(self, key: str, kind: str) -> List[str]:
        if key not in self.graph:
            return []
        return [target for _, target, edge_kind in self.graph.out_edges(key, data='kind')
                if edge_kind == kind]

    def _ancestor_keys(self, key: str) -> List[str]:
        ancestors: List[str] = []
        seen: Set[str] = {key}
        current = key
        while True:
            parents = self._targets(current, 'extends')
            if not parents or parents[0] in seen:
                return ancestors
            current = parents[0]
            seen.add(current)
            ancestors.append(current)

    def _interface_keys(self, key: str, kind: str, ancestors: List[str]) -> Set[str]:
        interfaces: Set[str] = set()
        for owner in [key] + ancestors:
            for interface in self._targets(owner, 'implements'):
                interfaces.add(interface)
                # Everything reachable from an interface is a parent interface
                interfaces.update(nx.descendants(self.graph, interface))
        # An interface counts as implementing itself, a class never does
        if kind == 'interface':
            interfaces.add(key)
        else:
            interfaces.discard(key)
        return interfaces

    def _trait_methods(self, key: str) -> List[MethodDeclaration]:
        """Methods pulled in through ``use`` of traits, nearest trait first."""
        methods: List[MethodDeclaration] = []
        seen: Set[str] = {key}
        pending = self._targets(key, 'uses')
        while pending:
            trait = pending.pop(0)
            if trait in seen:
                continue
            seen.add(trait)
            declaration = self.declarations.get(trait)
            if declaration is None:
                log_debug("ClassIndex", f"Trait {self.display_names[trait]} is not indexed")
                continue
            methods.extend(declaration.methods)
            pending.extend(self._targets(trait, 'uses'))
        return methods

    def describe_class(self, name: str) -> Optional[ClassDescriptor]:
        """Build the descriptor for a declared class.

        Returns:
            ClassDescriptor, or None if the class was never declared
        """
        key = normalize_class_name(name).lower()
        declaration = self.declarations.get(key)
        if declaration is None:
            return None

        ancestors = self._ancestor_keys(key)
        interfaces = self._interface_keys(key, declaration.kind, ancestors)
        return ClassDescriptor(
            name=self.display_names[key],
            interfaces=frozenset(self.display_names[i] for i in interfaces),
            ancestors=tuple(self.display_names[a] for a in ancestors),
            tags=tuple(declaration.tags),
            kind=declaration.kind,
        )

    def methods_of(self, class_name: str) -> List[MethodDescriptor]:
        """Descriptors for every method a class declares or takes from its traits.

        Trait methods are reported with the using class as declaring class,
        together with their own attributes. A method the class declares
        itself takes precedence over a trait method of the same name.
        """
        class_descriptor = self.describe_class(class_name)
        if class_descriptor is None:
            return []
        key = normalize_class_name(class_name).lower()
        methods = list(self.declarations[key].methods)
        known = {method.name.lower() for method in methods}
        for method in self._trait_methods(key):
            if method.name.lower() not in known:
                known.add(method.name.lower())
                methods.append(method)
        return [
            MethodDescriptor(
                name=method.name,
                declaring_class=class_descriptor,
                is_constructor=method.is_constructor,
                tags=tuple(method.tags),
                line=method.line,
            )
            for method in methods
        ]

    def describe_method(self, class_name: str, method_name: str) -> Optional[MethodDescriptor]:
        """Find a method by name (PHP method names are case-insensitive)."""
        for method in self.methods_of(class_name):
            if method.name.lower() == method_name.lower():
                return method
        return None

    def class_names(self) -> List[str]:
        return sorted(self.display_names[key] for key in self.declarations)

    def iter_methods(self) -> Iterable[Tuple[ClassDescriptor, MethodDescriptor]]:
        """Yield (class, method) pairs for every indexed method.

        Traits are skipped; their methods are yielded under each using class.
        """
        for class_name in self.class_names():
            if self.declarations[class_name.lower()].kind == 'trait':
                continue
            for method in self.methods_of(class_name):
                yield method.declaring_class, method
