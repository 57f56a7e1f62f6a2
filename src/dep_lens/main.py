import asyncio
import json
import sys
from dataclasses import fields
from pathlib import Path
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.panel import Panel

from . import __version__
from .chain import resolve_why
from .cli_config import (
    ComprehensiveConfig,
    apply_config_section,
    create_sample_config,
    get_config,
    load_config_file,
    validate_config_values,
)
from .completion import get_completion_scripts
from .dependency import DependencyRecord
from .graph import build_index, filter_records
from .loader import RecordLoadError, load_dependency_records
from .outdated import collect_outdated, direct_entries, empty_message, fetch_latest_versions
from .provenance import LOCKFILE_PREFIXES
from .reporting import DependencyReporter
from .structured_logging import (
    clear_command_context,
    configure_logging,
    set_command_context,
)
from .tree import materialize

console = Console()

FORMAT_OPTION = click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    show_default=True,
    help="Output format",
)

INPUT_OPTION = click.option(
    "--input",
    "-i",
    "input_path",
    type=str,
    default=None,
    help="Dependency records file (JSON or YAML, '-' for stdin). "
    "Defaults to input.default_path from the configuration.",
)


def load_records(input_path: Optional[str]) -> Tuple[str, List[DependencyRecord]]:
    """Load dependency records, falling back to the configured input path."""
    path = input_path or get_config().input.default_path
    try:
        return path, load_dependency_records(path)
    except RecordLoadError as e:
        raise click.ClickException(str(e))


def lockfile_prefixes() -> Tuple[str, ...]:
    extra = get_config().provenance.extra_lockfile_prefixes
    return LOCKFILE_PREFIXES + tuple(prefix for prefix in extra if prefix not in LOCKFILE_PREFIXES)


def get_reporter() -> DependencyReporter:
    return DependencyReporter(console, color=get_config().display.color)


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version information")
@click.pass_context
def cli(ctx, version):
    """
    🔍 dep-lens: dependency tree inspector

    Lists dependencies as a tree, explains why a package is installed and
    reports outdated direct dependencies, from records exported by the
    ecosystem plugins.
    """
    if version:
        console.print(f"dep-lens version {__version__}", style="bold blue")
        ctx.exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        return

    logging_config = get_config().logging
    configure_logging(logging_config.log_level, logging_config.enable_json)


@cli.command("list")
@INPUT_OPTION
@click.option(
    "--depth",
    type=click.IntRange(min=0),
    default=None,
    help="Show subdependencies up to N levels deep (default: display.max_depth)",
)
@click.option(
    "--ecosystem",
    type=str,
    default=None,
    help="Filter to a specific ecosystem (e.g., npm, rubygems, pypi)",
)
@FORMAT_OPTION
def list_dependencies(
    input_path: Optional[str], depth: Optional[int], ecosystem: Optional[str], output_format: str
):
    """List all dependencies as a tree.

    Examples:

      dep-lens list

      dep-lens list --depth 1 --ecosystem npm
    """
    config = get_config()
    path, records = load_records(input_path)
    max_depth = config.display.max_depth if depth is None else depth

    set_command_context(command="list", input_path=path, total_records=len(records))
    try:
        if not records:
            if output_format == "json":
                print(json.dumps([]))
            else:
                console.print("No dependencies detected in this project.")
            return

        index = build_index(records, ecosystem, lockfile_prefixes())
        entries = materialize(index, max_depth)

        if not entries:
            if output_format == "json":
                print(json.dumps([]))
            elif ecosystem:
                console.print(f'No dependencies found for ecosystem "{ecosystem}".', markup=False)
            else:
                console.print("No direct dependencies detected in this project.")
            return

        if output_format == "json":
            print(json.dumps([entry.to_dict() for entry in entries], indent=2))
            return

        get_reporter().print_dependency_tree(
            entries,
            index,
            ecosystem_filter=ecosystem,
            show_summary=config.display.show_summary,
            show_unrecognized=config.display.show_unrecognized,
        )
    finally:
        clear_command_context()


@cli.command()
@click.argument("dependency")
@INPUT_OPTION
@FORMAT_OPTION
def why(dependency: str, input_path: Optional[str], output_format: str):
    """Show why a dependency is installed.

    Prints every chain from a direct dependency down to DEPENDENCY.

    Examples:

      dep-lens why sucrase

      dep-lens why sucrase --format json
    """
    path, records = load_records(input_path)

    set_command_context(command="why", input_path=path, total_records=len(records))
    try:
        result = resolve_why(
            records,
            dependency,
            max_walk_depth=get_config().provenance.max_walk_depth,
            lockfile_prefixes=lockfile_prefixes(),
        )
    finally:
        clear_command_context()

    if output_format == "json":
        print(json.dumps(result.to_dict(), indent=2))
    else:
        get_reporter().print_why(result)

    if not result.found:
        sys.exit(1)


@cli.command()
@INPUT_OPTION
@click.option(
    "--ecosystem",
    type=str,
    default=None,
    help="Filter to a specific ecosystem (e.g., npm, rubygems, pypi)",
)
@click.option(
    "--semver",
    "semver_filter",
    type=click.Choice(["patch", "minor"]),
    default=None,
    help='"patch" for patch updates only, "minor" for minor and patch updates',
)
@click.option(
    "--fetch",
    is_flag=True,
    help="Look up missing wanted/latest versions in the package registries",
)
@FORMAT_OPTION
def outdated(
    input_path: Optional[str],
    ecosystem: Optional[str],
    semver_filter: Optional[str],
    fetch: bool,
    output_format: str,
):
    """Show outdated direct dependencies.

    Examples:

      dep-lens outdated --semver patch

      dep-lens outdated --fetch --ecosystem npm
    """
    config = get_config()
    path, records = load_records(input_path)
    prefixes = lockfile_prefixes()

    set_command_context(command="outdated", input_path=path, total_records=len(records))
    try:
        registry_versions = None
        if fetch:
            pending = direct_entries(filter_records(records, ecosystem), prefixes)
            registry_versions = asyncio.run(
                fetch_latest_versions(
                    pending,
                    max_concurrent=config.network.max_concurrent,
                    rate_limit_rps=config.network.rate_limit,
                )
            )

        entries = collect_outdated(
            records,
            ecosystem_filter=ecosystem,
            semver_filter=semver_filter,
            registry_versions=registry_versions,
            lockfile_prefixes=prefixes,
        )
    finally:
        clear_command_context()

    if output_format == "json":
        print(json.dumps([entry.to_dict() for entry in entries], indent=2))
        return

    if not entries:
        console.print(empty_message(ecosystem, semver_filter), markup=False)
        return

    get_reporter().print_outdated(entries, ecosystem_filter=ecosystem)


@cli.command()
def info():
    """Show information about input formats and configuration."""
    info_text = """
[bold blue]📋 Input Format:[/bold blue]

A JSON or YAML list of dependency records (or an object with a
[green]dependencies[/green] list), as exported by the ecosystem plugins:

  [dim]{"name": "sucrase", "ecosystem": "npm",
   "versions": {"3.35.0": ["pnpm-lock.yaml:tsup@8.5.0"]}}[/dim]

[bold blue]🔗 Provenance Formats:[/bold blue]

• [green]package.json#dependencies[/green] - Direct production dependency
• [green]package.json#devDependencies[/green] - Direct development dependency
• [green]pnpm-lock.yaml:parent@1.0.0[/green] - Pulled in by parent@1.0.0
  (also [green]yarn.lock:[/green], [green]Gemfile.lock:[/green], [green]uv.lock:[/green], [green]deno.lock:[/green])

[bold blue]🌍 Environment Variables:[/bold blue]

• [cyan]DEP_LENS_INPUT[/cyan] - Default dependency records file
• [cyan]DEP_LENS_MAX_DEPTH[/cyan] - Default tree depth for list
• [cyan]DEP_LENS_MAX_WALK_DEPTH[/cyan] - Bound on chain walks
• [cyan]DEP_LENS_TIMEOUT[/cyan] - Registry request timeout
• [cyan]DEP_LENS_RATE_LIMIT[/cyan] - Registry requests per second
• [cyan]DEP_LENS_MAX_CONCURRENT[/cyan] - Concurrent registry lookups
• [cyan]DEP_LENS_LOG_LEVEL[/cyan] - Log level for stderr logs
• [cyan]NO_COLOR[/cyan] - Disable colored output

[bold blue]📄 Configuration Files:[/bold blue]

• [green].dep-lens.json[/green] / [green].dep-lens.yaml[/green] - Project-level config
• [green]~/.config/dep-lens/config.json[/green] - User-level config
• [green]~/.dep-lens.json[/green] - User home config

[bold blue]💡 Usage Examples:[/bold blue]

  # Direct dependencies
  dep-lens list

  # Two levels of subdependencies, npm only
  dep-lens list --depth 2 --ecosystem npm

  # Why is a package installed?
  dep-lens why sucrase

  # Patch-level updates, looking up registries
  dep-lens outdated --semver patch --fetch
"""
    console.print(
        Panel(
            info_text,
            title="[bold]dep-lens Information[/bold]",
            border_style="blue",
        )
    )


@cli.group()
def config():
    """Configuration management commands."""
    pass


@config.command("init")
@click.option(
    "--path",
    type=click.Path(),
    default=".dep-lens.json",
    help="Path where to create the config file",
    show_default=True,
)
@click.option("--force", is_flag=True, help="Overwrite existing config file")
def config_init(path: str, force: bool):
    """Create a sample configuration file."""
    config_path = Path(path)

    if config_path.exists() and not force:
        console.print(f"⚠️  Config file already exists at {config_path}", style="yellow")
        console.print("Use --force to overwrite", style="dim")
        return

    try:
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_sample_config())
    except OSError as e:
        raise click.ClickException(f"Failed to create config file: {e}")

    console.print(f"✅ Created configuration file at {config_path}", style="green")
    console.print("Edit this file to customize your settings", style="dim")


_SECTION_TITLES = {
    "display": "🖥️  Display Settings",
    "input": "📥 Input Settings",
    "provenance": "🔗 Provenance Settings",
    "network": "🌐 Network Settings",
    "logging": "📝 Logging Settings",
}


@config.command("show")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    show_default=True,
    help="Output format",
)
def config_show(output_format: str):
    """Show current configuration settings."""
    current_config = get_config()

    if output_format == "json":
        print(json.dumps(current_config.to_dict(), indent=2))
        return

    console.print(Panel("[bold blue]🔧 dep-lens Configuration[/bold blue]", border_style="blue"))

    for section_name, title in _SECTION_TITLES.items():
        section = getattr(current_config, section_name)
        console.print(f"\n[bold cyan]{title}:[/bold cyan]")
        for section_field in fields(section):
            value = getattr(section, section_field.name)
            if isinstance(value, dict):
                for key, item in value.items():
                    console.print(f"  {section_field.name}.{key}: {item}", markup=False)
            else:
                console.print(f"  {section_field.name}: {value}", markup=False)


@config.command("validate")
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
def config_validate(config_file: str):
    """Validate a configuration file."""
    config_data = load_config_file(Path(config_file))

    if config_data is None:
        console.print(f"❌ Could not load config from {config_file}", style="red")
        sys.exit(1)

    candidate = ComprehensiveConfig()
    for section_name, section_data in config_data.items():
        if section_name not in _SECTION_TITLES:
            console.print(f"⚠️  Unknown config section: {section_name}", style="yellow")
            continue
        apply_config_section(getattr(candidate, section_name), section_data, section_name)

    errors = validate_config_values(candidate)

    if errors:
        console.print(f"❌ Configuration file {config_file} is invalid:", style="red")
        for error in errors:
            console.print(f"  • {error}", style="red", markup=False)
        sys.exit(1)

    console.print(f"✅ Configuration file {config_file} is valid", style="green")


@cli.command()
@click.argument(
    "shell", type=click.Choice(["bash", "zsh", "fish"], case_sensitive=False)
)
@click.option(
    "--install",
    is_flag=True,
    help="Install completion script to a user location",
)
def completion(shell: str, install: bool):
    """Generate shell completion scripts.

    Examples:

      dep-lens completion bash

      dep-lens completion zsh > ~/.local/share/zsh/site-functions/_dep-lens
    """
    shell = shell.lower()
    script_content = get_completion_scripts()[shell]

    if not install:
        print(script_content)
        return

    install_paths = {
        "bash": "~/.local/share/bash-completion/completions/dep-lens",
        "zsh": "~/.local/share/zsh/site-functions/_dep-lens",
        "fish": "~/.config/fish/completions/dep-lens.fish",
    }
    install_path = Path(install_paths[shell]).expanduser()

    try:
        install_path.parent.mkdir(parents=True, exist_ok=True)
        with open(install_path, "w", encoding="utf-8") as f:
            f.write(script_content)
    except OSError as e:
        raise click.ClickException(f"Could not install completion script to {install_path}: {e}")

    console.print(f"✅ Installed {shell} completion to {install_path}", style="green")
    if shell == "zsh":
        console.print("Add to ~/.zshrc: autoload -U compinit && compinit", style="dim")
    else:
        console.print("Completion will be available in new shell sessions", style="dim")


if __name__ == "__main__":
    cli()
