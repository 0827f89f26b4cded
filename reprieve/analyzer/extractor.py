"""Class, method and attribute extraction from PHP syntax trees."""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from tree_sitter import Node, Tree

from .descriptors import MetadataTag


@dataclass
class MethodDeclaration:
    """A method as written in source."""
    name: str
    tags: Tuple[MetadataTag, ...] = ()
    line: int = 0

    @property
    def is_constructor(self) -> bool:
        return self.name.lower() == '__construct'


@dataclass
class ClassDeclaration:
    """A class, interface, trait or enum as written in source.

    parents holds the names after ``extends``: one parent class for a class,
    any number of parent interfaces for an interface.
    """
    name: str
    kind: str  # class, interface, trait, enum
    parents: List[str] = field(default_factory=list)
    interfaces: List[str] = field(default_factory=list)
    traits: List[str] = field(default_factory=list)
    tags: Tuple[MetadataTag, ...] = ()
    methods: List[MethodDeclaration] = field(default_factory=list)
    file_path: str = ''
    line: int = 0


class NameResolver:
    """Resolves class names against the current namespace and its use imports."""

    def __init__(self, namespace: str = ''):
        self.namespace = namespace.strip('\\')
        self.aliases: Dict[str, str] = {}  # lowercased alias -> fully qualified name

    def add_use(self, target: str, alias: Optional[str] = None):
        target = target.strip('\\')
        alias = alias or target.rsplit('\\', 1)[-1]
        self.aliases[alias.lower()] = target

    def qualify(self, declared_name: str) -> str:
        """Fully qualify a name being declared in the current namespace."""
        return f"{self.namespace}\\{declared_name}" if self.namespace else declared_name

    def resolve(self, name: str) -> str:
        """Resolve a referenced class or attribute name.

        Examples (namespace App, ``use Doctrine\\ORM\\Mapping as ORM``):
            \\Foo\\Bar   -> Foo\\Bar
            ORM\\PostLoad -> Doctrine\\ORM\\Mapping\\PostLoad
            User        -> App\\User
        """
        if name.startswith('\\'):
            return name[1:]
        head, sep, rest = name.partition('\\')
        if head.lower() == 'namespace' and sep:
            return self.qualify(rest)
        target = self.aliases.get(head.lower())
        if target:
            return f"{target}\\{rest}" if sep else target
        return self.qualify(name)


# Only \' and \\ are escapes inside single quotes
_SINGLE_QUOTED_ESCAPE = re.compile(r"\\([\\'])")

# Unknown sequences such as \q stay as written, like PHP does
_DOUBLE_QUOTED_ESCAPE = re.compile(
    r'\\(?:([nrtvef\\$"])|([0-7]{1,3})|x([0-9A-Fa-f]{1,2})|u\{([0-9A-Fa-f]+)\})'
)

_SIMPLE_ESCAPES = {
    'n': '\n', 'r': '\r', 't': '\t', 'v': '\v', 'e': '\x1b', 'f': '\f',
    '\\': '\\', '$': '$', '"': '"',
}


def _decode_escape(match: re.Match) -> str:
    simple, octal, hex_byte, codepoint = match.groups()
    if simple:
        return _SIMPLE_ESCAPES[simple]
    if octal:
        return chr(int(octal, 8) & 0xFF)
    if hex_byte:
        return chr(int(hex_byte, 16))
    return chr(int(codepoint, 16))


def _text(node: Optional[Node]) -> str:
    if node is None:
        return ''
    return node.text.decode('utf-8', errors='ignore')


class DeclarationExtractor:
    """Extract class declarations with their attributes from a PHP tree."""

    CLASS_NODE_TYPES = {
        'class_declaration': 'class',
        'interface_declaration': 'interface',
        'trait_declaration': 'trait',
        'enum_declaration': 'enum',
    }

    # Statements whose blocks may hold conditional class declarations
    _NESTED_BLOCKS = {
        'compound_statement', 'colon_block', 'if_statement', 'else_clause',
        'else_if_clause', 'try_statement', 'catch_clause', 'finally_clause',
        'declare_statement',
    }

    # Children of a string node that keep it a plain literal
    _LITERAL_STRING_PARTS = {'string', 'string_content', 'string_value', 'escape_sequence'}

    def extract(self, tree: Tree, file_path: str = '') -> List[ClassDeclaration]:
        """Extract all class-like declarations from a parsed file.

        Args:
            tree: Parsed tree-sitter Tree
            file_path: Path recorded on each declaration

        Returns:
            ClassDeclaration objects in source order
        """
        declarations: List[ClassDeclaration] = []
        self._walk_statements(tree.root_node.children, NameResolver(), str(file_path), declarations)
        return declarations

    def _walk_statements(self, nodes: List[Node], resolver: NameResolver, file_path: str,
                         declarations: List[ClassDeclaration]):
        for node in nodes:
            if node.type == 'namespace_definition':
                namespace = _text(node.child_by_field_name('name'))
                body = node.child_by_field_name('body')
                if body is not None:
                    # Braced namespace: scope ends with the block
                    self._walk_statements(body.children, NameResolver(namespace), file_path, declarations)
                else:
                    resolver = NameResolver(namespace)
            elif node.type == 'namespace_use_declaration':
                self._register_uses(node, resolver)
            elif node.type in self.CLASS_NODE_TYPES:
                declarations.append(self._extract_class(node, resolver, file_path))
            elif node.type in self._NESTED_BLOCKS:
                # e.g. if (!class_exists(Foo::class)) { class Foo {} }
                self._walk_statements(node.children, resolver, file_path, declarations)

    def _register_uses(self, node: Node, resolver: NameResolver):
        # use function / use const import non-class names
        if any(child.type in ('function', 'const') for child in node.children):
            return

        group = next((c for c in node.named_children if c.type == 'namespace_use_group'), None)
        if group is not None:
            prefix_node = next((c for c in node.named_children if c.type == 'namespace_name'), None)
            prefix = _text(prefix_node).strip('\\')
            clauses = [c for c in group.named_children
                       if c.type in ('namespace_use_clause', 'namespace_use_group_clause')]
        else:
            prefix = ''
            clauses = [c for c in node.named_children if c.type == 'namespace_use_clause']

        for clause in clauses:
            if any(child.type in ('function', 'const') for child in clause.children):
                continue
            target, alias = self._use_clause_parts(clause)
            if target:
                resolver.add_use(f"{prefix}\\{target}" if prefix else target, alias)

    def _use_clause_parts(self, clause: Node) -> Tuple[str, Optional[str]]:
        alias_node = clause.child_by_field_name('alias')
        if alias_node is None:
            aliasing = next((c for c in clause.named_children if c.type == 'namespace_aliasing_clause'), None)
            if aliasing is not None:
                alias_node = next((c for c in aliasing.named_children if c.type == 'name'), None)

        target_node = next(
            (c for c in clause.named_children
             if c.type in ('qualified_name', 'name', 'namespace_name')
             and (alias_node is None or c.start_byte != alias_node.start_byte)),
            None
        )
        alias = _text(alias_node) if alias_node is not None else None
        return _text(target_node), alias

    def _extract_class(self, node: Node, resolver: NameResolver, file_path: str) -> ClassDeclaration:
        name = resolver.qualify(_text(node.child_by_field_name('name')))
        parents: List[str] = []
        interfaces: List[str] = []
        for child in node.named_children:
            if child.type == 'base_clause':
                parents = self._names_in(child, resolver)
            elif child.type == 'class_interface_clause':
                interfaces = self._names_in(child, resolver)

        methods = []
        traits: List[str] = []
        body = node.child_by_field_name('body')
        if body is not None:
            for member in body.named_children:
                if member.type == 'use_declaration':
                    # Conflict resolution blocks (insteadof / as) are not applied
                    traits.extend(self._names_in(member, resolver))
                elif member.type == 'method_declaration':
                    methods.append(MethodDeclaration(
                        name=_text(member.child_by_field_name('name')),
                        tags=self._extract_attributes(member, resolver, name),
                        line=member.start_point[0] + 1,
                    ))

        return ClassDeclaration(
            name=name,
            kind=self.CLASS_NODE_TYPES[node.type],
            parents=parents,
            interfaces=interfaces,
            traits=traits,
            tags=self._extract_attributes(node, resolver, name),
            methods=methods,
            file_path=file_path,
            line=node.start_point[0] + 1,
        )

    def _names_in(self, clause: Node, resolver: NameResolver) -> List[str]:
        return [resolver.resolve(_text(c)) for c in clause.named_children
                if c.type in ('name', 'qualified_name')]

    def _extract_attributes(self, node: Node, resolver: NameResolver,
                            current_class: str) -> Tuple[MetadataTag, ...]:
        tags = []
        for attribute_list in (c for c in node.children if c.type == 'attribute_list'):
            for group in attribute_list.named_children:
                if group.type != 'attribute_group':
                    continue
                for attribute in group.named_children:
                    if attribute.type == 'attribute':
                        tag = self._extract_attribute(attribute, resolver, current_class)
                        if tag is not None:
                            tags.append(tag)
        return tuple(tags)

    def _extract_attribute(self, attribute: Node, resolver: NameResolver,
                           current_class: str) -> Optional[MetadataTag]:
        name_node = next((c for c in attribute.named_children
                          if c.type in ('name', 'qualified_name')), None)
        if name_node is None:
            return None

        arguments = attribute.child_by_field_name('parameters')
        if arguments is None:
            arguments = next((c for c in attribute.named_children if c.type == 'arguments'), None)

        positional: List[Any] = []
        keyed: List[Tuple[str, Any]] = []
        if arguments is not None:
            for argument in arguments.named_children:
                if argument.type != 'argument':
                    continue
                key_node = argument.child_by_field_name('name')
                if key_node is None and any(c.type == ':' for c in argument.children):
                    key_node = argument.named_children[0]
                value_nodes = [c for c in argument.named_children
                               if key_node is None or c.start_byte != key_node.start_byte]
                value = self._literal(value_nodes[-1], resolver, current_class) if value_nodes else None
                if key_node is not None:
                    keyed.append((_text(key_node), value))
                else:
                    positional.append(value)

        return MetadataTag(
            name=resolver.resolve(_text(name_node)),
            positional=tuple(positional),
            keyed=tuple(keyed),
        )

    def _literal(self, node: Node, resolver: NameResolver, current_class: str) -> Any:
        """Evaluate a constant argument expression; anything else is None."""
        if node.type in ('string', 'encapsed_string'):
            # Double-quoted strings may interpolate variables
            if node.type == 'encapsed_string' and any(
                    c.type not in self._LITERAL_STRING_PARTS for c in node.named_children):
                return None
            text = _text(node)
            if text[:1] in ('b', 'B'):
                text = text[1:]
            if len(text) < 2 or text[0] != text[-1] or text[0] not in ('"', "'"):
                return None
            if text[0] == "'":
                return _SINGLE_QUOTED_ESCAPE.sub(r'\1', text[1:-1])
            return _DOUBLE_QUOTED_ESCAPE.sub(_decode_escape, text[1:-1])

        if node.type == 'integer':
            try:
                return int(_text(node).replace('_', ''), 0)
            except ValueError:
                return None

        if node.type == 'boolean':
            return _text(node).lower() == 'true'

        if node.type == 'class_constant_access_expression':
            # Foo::class; the trailing 'class' may or may not be a named node
            if not node.named_children or _text(node.children[-1]).lower() != 'class':
                return None
            owner_node = node.named_children[0]
            owner = _text(owner_node)
            if owner.lower() in ('self', 'static'):
                return current_class
            if owner_node.type in ('name', 'qualified_name'):
                return resolver.resolve(owner)
            return None

        return None
