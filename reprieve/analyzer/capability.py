"""Runtime capability checks for declarative metadata (PHP attributes)."""
import json
import re
from pathlib import Path
from typing import Optional

from ..utils.console import log_warning

_VERSION_PATTERN = re.compile(r'^\s*(\d+)(?:\.(\d+))?(?:\.(\d+))?')


def version_id(version: str) -> int:
    """Convert a version string like '8.1.2' into a PHP_VERSION_ID style integer.

    Raises:
        ValueError: If the string does not start with a numeric version
    """
    match = _VERSION_PATTERN.match(version or '')
    if not match:
        raise ValueError(f"Invalid PHP version: {version!r}")
    major, minor, patch = (int(part) if part else 0 for part in match.groups())
    return major * 10000 + minor * 100 + patch


class CapabilityGate:
    """Answers whether the analyzed runtime supports attributes.

    Attributes (``#[...]``) exist from PHP 8.0 on. On older runtimes they are
    plain comments, so rules relying on them must not match.
    """

    ATTRIBUTES_MIN_VERSION_ID = 80000

    def __init__(self, runtime_version_id: int):
        self.runtime_version_id = runtime_version_id
        self._supports_attributes = runtime_version_id >= self.ATTRIBUTES_MIN_VERSION_ID

    @classmethod
    def from_version_string(cls, version: str) -> 'CapabilityGate':
        return cls(version_id(version))

    def supports_declarative_metadata(self) -> bool:
        return self._supports_attributes

    def __repr__(self) -> str:
        return f"CapabilityGate(runtime_version_id={self.runtime_version_id})"


def platform_php_version(project_root: Path) -> Optional[str]:
    """Read config.platform.php from a project's composer.json.

    Args:
        project_root: Directory holding composer.json

    Returns:
        The configured platform version, or None if absent or unreadable
    """
    composer_file = Path(project_root) / 'composer.json'
    if not composer_file.exists():
        return None
    try:
        data = json.loads(composer_file.read_text(encoding='utf-8'))
    except (json.JSONDecodeError, OSError) as e:
        log_warning("CapabilityGate", f"Could not read {composer_file}: {e}")
        return None
    if not isinstance(data, dict):
        return None
    config = data.get('config')
    platform = config.get('platform') if isinstance(config, dict) else None
    version = platform.get('php') if isinstance(platform, dict) else None
    return version if isinstance(version, str) else None
