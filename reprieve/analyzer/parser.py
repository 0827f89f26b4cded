"""Tree-sitter parser for PHP sources."""
from pathlib import Path
from typing import Optional

import tree_sitter_php as tsphp
from tree_sitter import Language, Parser, Tree


class LanguageParser:
    """PHP parser using the tree-sitter v0.22+ API.

    Uses the mixed HTML/PHP grammar, so templates with inline markup parse too.
    """

    SUPPORTED_EXTENSIONS = frozenset({'.php', '.phtml', '.inc'})

    def __init__(self):
        self.parser = Parser(Language(tsphp.language_php()))

    @classmethod
    def supports(cls, file_path: str | Path) -> bool:
        return Path(file_path).suffix.lower() in cls.SUPPORTED_EXTENSIONS

    def parse_source(self, source_code: bytes) -> Tree:
        return self.parser.parse(source_code)

    def parse_file(self, file_path: str | Path) -> Optional[Tree]:
        """Parse file and return tree-sitter Tree.

        Args:
            file_path: Path to source file to parse

        Returns:
            Parsed Tree object, or None if the file could not be read
        """
        file_path = Path(file_path)

        if not file_path.exists():
            return None

        try:
            return self.parser.parse(file_path.read_bytes())
        except OSError:
            return None
