"""Reprieve CLI - framework-aware usage verdicts for PHP dead-code findings."""
from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape
from rich.table import Table

from reprieve.analyzer.capability import CapabilityGate, platform_php_version
from reprieve.analyzer.metadata import ClassIndex
from reprieve.analyzer.packages import ComposerPackages
from reprieve.config import DEFAULT_PHP_VERSION, Config, __version__, get_config
from reprieve.providers.doctrine import DoctrineUsageProvider
from reprieve.providers.registry import ProviderRegistry
from reprieve.utils.console import SafeConsole, set_verbose

app = typer.Typer(
    name="reprieve",
    help="Explain which PHP methods frameworks call without a visible call site",
    add_completion=False
)
console = SafeConsole()


def resolve_php_version(project_root: Path, explicit: Optional[str], config: Config) -> str:
    """Pick the PHP version the capability gate is computed from.

    Priority:
    1. Explicit value (CLI option)
    2. REPRIEVE_PHP_VERSION environment variable
    3. config.platform.php in composer.json
    4. DEFAULT_PHP_VERSION
    """
    return (
        explicit
        or config.php_version
        or platform_php_version(project_root)
        or DEFAULT_PHP_VERSION
    )


def build_registry(project_root: Path, doctrine: Optional[bool] = None,
                   php_version: Optional[str] = None, config: Config = None) -> ProviderRegistry:
    """Create the provider registry for a project.

    Args:
        project_root: Composer project root
        doctrine: Explicit Doctrine switch; None falls back to config, then inference
        php_version: Explicit PHP version for the capability gate
        config: Config instance (defaults to the process-wide singleton)

    Returns:
        Registry with every framework provider registered

    Raises:
        ValueError: On invalid configuration values
    """
    config = config or get_config()
    gate = CapabilityGate.from_version_string(resolve_php_version(project_root, php_version, config))
    doctrine_enabled = doctrine if doctrine is not None else config.doctrine_enabled
    packages = ComposerPackages(project_root)

    return ProviderRegistry([
        DoctrineUsageProvider(enabled=doctrine_enabled, gate=gate, packages=packages),
    ])


def _setup(project_path: str, doctrine: Optional[bool], php_version: Optional[str],
           verbose: bool):
    root = Path(project_path).resolve()
    if not root.exists():
        console.print(f"[red]Error: Path does not exist: {escape(str(root))}[/red]")
        raise typer.Exit(1)

    config = get_config()
    set_verbose(verbose or config.debug)
    try:
        registry = build_registry(root, doctrine=doctrine, php_version=php_version, config=config)
    except ValueError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    return root, registry


@app.command()
def scan(
    project_path: str = typer.Argument(".", help="Project root to analyze"),
    doctrine: Optional[bool] = typer.Option(None, "--doctrine/--no-doctrine", help="Force the Doctrine provider on/off (default: detect from installed packages)"),
    php_version: Optional[str] = typer.Option(None, "--php-version", help="PHP version of the analyzed runtime (e.g. 8.1)"),
    with_vendor: bool = typer.Option(False, "--with-vendor", help="Index vendor/ too, for full framework class hierarchies"),
    show_all: bool = typer.Option(False, "--all", help="List methods no provider marks as used"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print debug lines"),
):
    """List methods that framework providers mark as used."""
    root, registry = _setup(project_path, doctrine, php_version, verbose)

    with console.status("Indexing PHP classes..."):
        index = ClassIndex.from_paths([root], include_vendor=with_vendor)

    table = Table(title="Method Verdicts")
    table.add_column("Method", style="cyan")
    table.add_column("Used", justify="center")
    table.add_column("Provider", style="magenta")
    table.add_column("Rule", style="green")

    used_count = 0
    total = 0
    for class_descriptor, method in index.iter_methods():
        if not with_vendor or not _in_vendor(index, class_descriptor.name, root):
            total += 1
            verdict = registry.explain(method)
            if verdict is not None:
                used_count += 1
                table.add_row(escape(method.qualified_name), "✓", verdict.provider, verdict.rule)
            elif show_all:
                table.add_row(escape(method.qualified_name), "✗", "-", "-")

    if table.row_count:
        console.print(table)
    console.print(f"\n[bold]{used_count}[/bold] of {total} methods marked as used by framework providers")


def _in_vendor(index: ClassIndex, class_name: str, root: Path) -> bool:
    declaration = index.declarations.get(class_name.lower())
    if declaration is None:
        return False
    try:
        return Path(declaration.file_path).relative_to(root).parts[0] == 'vendor'
    except ValueError:
        return False


@app.command()
def check(
    project_path: str = typer.Argument(..., help="Project root to analyze"),
    class_name: str = typer.Argument(..., help="Fully qualified class name, e.g. App\\Entity\\User"),
    method_name: str = typer.Argument(..., help="Method name"),
    doctrine: Optional[bool] = typer.Option(None, "--doctrine/--no-doctrine", help="Force the Doctrine provider on/off"),
    php_version: Optional[str] = typer.Option(None, "--php-version", help="PHP version of the analyzed runtime"),
    with_vendor: bool = typer.Option(False, "--with-vendor", help="Index vendor/ too"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print debug lines"),
):
    """Print the verdict for one method. Exit code 0 = used, 1 = not used, 2 = not found."""
    root, registry = _setup(project_path, doctrine, php_version, verbose)
    index = ClassIndex.from_paths([root], include_vendor=with_vendor)

    class_descriptor = index.describe_class(class_name)
    method = index.describe_method(class_name, method_name) if class_descriptor else None
    if method is None:
        console.print(f"[red]Error: {escape(class_name)}::{escape(method_name)} not found[/red]")
        raise typer.Exit(2)

    if registry.is_member_used(class_descriptor, method):
        verdict = registry.explain(method)
        console.print(
            f"[green]✓ {escape(method.qualified_name)} is used[/green] "
            f"(provider: {verdict.provider}, rule: {verdict.rule})"
        )
        return

    console.print(f"[yellow]✗ {escape(method.qualified_name)} is not claimed by any provider[/yellow]")
    raise typer.Exit(1)


@app.command()
def providers(
    project_path: str = typer.Argument(".", help="Project root"),
    doctrine: Optional[bool] = typer.Option(None, "--doctrine/--no-doctrine", help="Force the Doctrine provider on/off"),
    php_version: Optional[str] = typer.Option(None, "--php-version", help="PHP version of the analyzed runtime"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print debug lines"),
):
    """Show registered providers and whether they are enabled."""
    _, registry = _setup(project_path, doctrine, php_version, verbose)

    table = Table(title="Usage Providers")
    table.add_column("Provider", style="magenta")
    table.add_column("Enabled", justify="center")
    table.add_column("Attributes", justify="center")
    table.add_column("Rules")

    for provider in registry.providers:
        gate = getattr(provider, 'gate', None)
        attributes = "-" if gate is None else ("yes" if gate.supports_declarative_metadata() else "no")
        table.add_row(
            provider.name,
            "yes" if provider.enabled else "no",
            attributes,
            ", ".join(rule.name for rule in provider.rules),
        )
    console.print(table)


@app.command()
def version():
    """Print the Reprieve version."""
    console.print(f"reprieve {__version__}")


if __name__ == "__main__":
    app()
