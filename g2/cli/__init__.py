"""
g2 CLI.

Command-line interface for Manifest maintenance and ebuild inspection.
"""

import click
import yaml

from g2 import __version__


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", "config_path", type=click.Path(), help="Path to config YAML")
@click.option("--log-level", "-l", help="Log level (overrides config)")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, log_level: str | None) -> None:
    """g2: Manifest and ebuild tooling for overlays."""
    from g2.config import load_config
    from g2.log import configure_logging

    try:
        config = load_config(config_path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        click.echo(f"Error loading config: {e}", err=True)
        raise SystemExit(1)

    configure_logging(log_level or config.log_level)
    ctx.obj = config


@main.group()
def manifest() -> None:
    """Commands relating to Manifest files."""
    pass


@manifest.command("upsert-from-url")
@click.argument("url")
@click.argument("filename")
@click.argument("target", type=click.Path())
@click.option("--algorithm", "-a", "algorithms", multiple=True, help="Digest to record (repeatable)")
@click.pass_obj
def upsert_from_url_cmd(
    config, url: str, filename: str, target: str, algorithms: tuple[str, ...]
) -> None:
    """Update or insert a Manifest entry streamed from URL."""
    from g2.errors import G2Error
    from g2.reconcile import upsert_from_url

    try:
        entry = upsert_from_url(url, filename, target, algorithms or None, config=config)
    except (G2Error, OSError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    click.echo(entry.to_string())


@manifest.command("verify")
@click.argument("target", type=click.Path(exists=True))
@click.option("--algorithm", "-a", "algorithms", multiple=True, help="Digest to record when fixing")
@click.option("--fix", is_flag=True, help="Download and add missing entries")
@click.option("--clean", "do_clean", is_flag=True, help="Remove unused entries afterwards")
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON")
@click.pass_obj
def verify_cmd(
    config,
    target: str,
    algorithms: tuple[str, ...],
    fix: bool,
    do_clean: bool,
    as_json: bool,
) -> None:
    """Check that every ebuild distfile has a Manifest entry."""
    from rich.console import Console
    from rich.table import Table

    from g2.errors import G2Error
    from g2.reconcile import verify

    try:
        report = verify(target, algorithms or None, fix=fix, clean=do_clean, config=config)
    except (G2Error, OSError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    if as_json:
        click.echo(report.to_json())
    else:
        console = Console()
        console.print(f"\n[bold]Manifest:[/bold] {report.manifest_path}")
        console.print(f"Ebuilds checked: [cyan]{len(report.ebuilds)}[/cyan]")

        if report.missing:
            table = Table(title="Missing distfiles")
            table.add_column("Distfile", style="cyan")
            table.add_column("Status")
            for name in report.missing:
                if name in report.fixed:
                    status = "[green]fixed[/green]"
                elif name in report.failed:
                    status = f"[red]failed: {report.failed[name]}[/red]"
                else:
                    status = "[yellow]missing[/yellow]"
                table.add_row(name, status)
            console.print(table)

        for name, reason in report.skipped.items():
            console.print(f"[dim]Skipped {name}: {reason}[/dim]")

        if report.clean is not None:
            if report.clean.changed:
                console.print(f"Removed {len(report.clean.removed)} unused entries")
            else:
                console.print("No unused entries")

    if not report.ok:
        raise SystemExit(1)


@manifest.command("clean")
@click.argument("target", type=click.Path(exists=True))
@click.pass_obj
def clean_cmd(config, target: str) -> None:
    """Remove Manifest entries no ebuild references."""
    from g2.errors import G2Error
    from g2.reconcile import clean

    try:
        report = clean(target, config=config)
    except (G2Error, OSError) as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    if report.changed:
        for name in report.removed:
            click.echo(f"Removed {name}")
    else:
        click.echo("Nothing to clean")


@main.group()
def ebuild() -> None:
    """Ebuild inspection commands."""
    pass


@ebuild.command("show")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--mode",
    type=click.Choice(["metadata", "variables", "full"]),
    default="full",
    help="How much of the ebuild to parse",
)
@click.pass_obj
def ebuild_show(config, path: str, mode: str) -> None:
    """Print an ebuild in canonical form."""
    from g2.core.ebuild import ParsingMode, parse_ebuild, parse_ebuild_variables

    mode_map = {
        "metadata": ParsingMode.METADATA_ONLY,
        "variables": ParsingMode.VARIABLES,
        "full": ParsingMode.FULL,
    }

    if parse_ebuild_variables(path, config.ebuild_suffix) is None:
        click.echo(f"Error: not an ebuild file name: {path}", err=True)
        raise SystemExit(1)

    try:
        parsed = parse_ebuild(path, mode_map[mode], config.ebuild_suffix)
    except (OSError, UnicodeDecodeError) as e:
        click.echo(f"Error reading ebuild: {e}", err=True)
        raise SystemExit(1)

    click.echo(parsed.to_string(), nl=False)


if __name__ == "__main__":
    main()
