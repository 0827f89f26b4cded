"""Installed Composer package detection.

Used only to decide whether a framework provider should switch itself on
when no explicit configuration is given.
"""
import json
from pathlib import Path
from typing import Iterable, Protocol, Set

from ..utils.console import log_debug, log_warning


class PackageDetector(Protocol):
    """Anything that can tell whether a package is part of the build."""

    def is_installed(self, package_name: str) -> bool:
        ...


class ComposerPackages:
    """Reads the installed package set of a Composer project.

    Sources, first one found wins:
    1. vendor/composer/installed.json (Composer 2 dict or Composer 1 list)
    2. composer.lock (packages + packages-dev)
    """

    def __init__(self, project_root: Path):
        """Load package names once.

        Args:
            project_root: Root directory of the Composer project
        """
        self.project_root = Path(project_root)
        self.packages: Set[str] = self._load()

    def is_installed(self, package_name: str) -> bool:
        return package_name.lower() in self.packages

    def _load(self) -> Set[str]:
        installed = self.project_root / 'vendor' / 'composer' / 'installed.json'
        if installed.exists():
            return self._read_names(installed, ('packages',))

        lock_file = self.project_root / 'composer.lock'
        if lock_file.exists():
            return self._read_names(lock_file, ('packages', 'packages-dev'))

        log_debug("ComposerPackages", f"No installed.json or composer.lock under {self.project_root}")
        return set()

    def _read_names(self, json_file: Path, sections: Iterable[str]) -> Set[str]:
        try:
            data = json.loads(json_file.read_text(encoding='utf-8'))
        except json.JSONDecodeError as e:
            log_warning("ComposerPackages", f"Error decoding JSON in {json_file.name}: {e}")
            return set()
        except OSError as e:
            log_warning("ComposerPackages", f"Cannot read {json_file}: {e}")
            return set()

        # Composer 1 wrote installed.json as a bare list
        if isinstance(data, list):
            entries = data
        elif isinstance(data, dict):
            entries = []
            for section in sections:
                section_entries = data.get(section)
                if isinstance(section_entries, list):
                    entries.extend(section_entries)
        else:
            log_warning(
                "ComposerPackages",
                f"{json_file.name} is malformed (got {type(data).__name__}). Skipping."
            )
            return set()

        names = {
            entry['name'].lower()
            for entry in entries
            if isinstance(entry, dict) and isinstance(entry.get('name'), str)
        }
        log_debug("ComposerPackages", f"{len(names)} packages found in {json_file.name}")
        return names


class StaticPackages:
    """Fixed package set, for callers that already know what is installed."""

    def __init__(self, package_names: Iterable[str] = ()):
        self.packages = {name.lower() for name in package_names}

    def is_installed(self, package_name: str) -> bool:
        return package_name.lower() in self.packages
