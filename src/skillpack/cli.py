"""
cli:
    Command-line interface for skillpack
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

import skillpack.config as config
from skillpack import __version__
from skillpack.clients import CLIENTS, get_client
from skillpack.clients.claude_code import install_system_hooks, uninstall_system_hooks
from skillpack.exceptions import SkillpackError
from skillpack.installer import (
    FAILED,
    install_assets,
    load_bundle,
    print_summary,
    uninstall_assets,
    verify_assets,
)
from skillpack.rules import RULES
from skillpack.scope import InstallScope, ScopeType
from skillpack.tracker import AssetKey, Tracker

console = Console()

CLIENT_CHOICE = click.Choice(list(CLIENTS.keys()))


def _build_scope(scope: str, repo_root: Optional[str], repo_url: Optional[str],
                 path: Optional[str]) -> InstallScope:
    if scope == ScopeType.GLOBAL.value:
        return InstallScope.global_scope()
    root = str(Path(repo_root or ".").resolve())
    url = repo_url or root
    if scope == ScopeType.PATH.value:
        if not path:
            console.print("[red]--path is required for path scope[/red]")
            raise SystemExit(1)
        return InstallScope.for_path(root, url, path)
    return InstallScope.repo(root, url)


def _default_clients(clients: tuple[str, ...]) -> list[str]:
    if clients:
        return list(clients)
    try:
        return list(config.load_config()["clients"])
    except SkillpackError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)


def _load_tracker() -> Tracker:
    try:
        return Tracker.load()
    except SkillpackError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)


def scope_options(func):
    """Shared --scope/--repo-root/--repo-url/--path options."""
    func = click.option('--path', 'path', default=None,
                        help='Path inside the repository (path scope)')(func)
    func = click.option('--repo-url', default=None,
                        help='Repository remote URL recorded in the ledger')(func)
    func = click.option('--repo-root', default=None,
                        help='Repository checkout directory (default: current directory)')(func)
    func = click.option('-s', '--scope', type=click.Choice([s.value for s in ScopeType]),
                        default=ScopeType.GLOBAL.value, show_default=True,
                        help='Installation scope')(func)
    return func


@click.group(name='skillpack')
@click.version_option(__version__, prog_name='skillpack')
@click.option('-v', '--verbose', is_flag=True, help='Enable debug logging')
def cli(verbose: bool):
    """
    Install skills, agents, commands, hooks, MCP servers, rules and plugins
    into AI coding assistants.
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(name)s: %(message)s')


@cli.command(name='install')
@click.argument('bundles', nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option('-c', '--client', 'clients', multiple=True, type=CLIENT_CHOICE,
              help='Target client (repeatable; default from config.yml)')
@scope_options
@click.option('-d', '--details', 'show_details', is_flag=True, help='Show per-asset details')
@click.option('-f', '--force', is_flag=True, help='Reinstall assets the ledger already has')
def install_cmd(bundles: tuple[str, ...], clients: tuple[str, ...], scope: str,
                repo_root: Optional[str], repo_url: Optional[str], path: Optional[str],
                show_details: bool, force: bool):
    """
    Install asset bundles.

    \b
    Examples:
        skillpack install code-review.zip
        skillpack install lint-rule.zip -c cursor -s repo --repo-url git@github.com:acme/app.git
    """
    install_scope = _build_scope(scope, repo_root, repo_url, path)
    tracker = _load_tracker()

    try:
        items = [load_bundle(Path(b)) for b in bundles]
    except SkillpackError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)

    console.print(f"[bold]Installing {len(items)} asset{'s' if len(items) != 1 else ''}...[/bold]")
    failed = False
    for client_id in _default_clients(clients):
        try:
            results = install_assets(client_id, items, install_scope, tracker, force=force)
        except (SkillpackError, ValueError) as e:
            console.print(f"  [red]{client_id}: {e}[/red]")
            failed = True
            continue
        print_summary(client_id, results, show_details)
        failed = failed or any(r.status == FAILED for r in results)

    tracker.save()
    if failed:
        raise SystemExit(1)


@cli.command(name='uninstall')
@click.argument('names', nargs=-1, required=True)
@click.option('-c', '--client', 'clients', multiple=True, type=CLIENT_CHOICE,
              help='Client to remove from (default: every client it is installed for)')
@scope_options
def uninstall_cmd(names: tuple[str, ...], clients: tuple[str, ...], scope: str,
                  repo_root: Optional[str], repo_url: Optional[str], path: Optional[str]):
    """Uninstall assets by name from the given scope."""
    install_scope = _build_scope(scope, repo_root, repo_url, path)
    tracker = _load_tracker()

    failed = False
    for name in names:
        asset = tracker.find(AssetKey.for_scope(name, install_scope))
        if asset is None:
            console.print(f"[yellow]{name} is not installed in this scope[/yellow]")
            continue
        for client_id in list(clients) or list(asset.clients):
            results = uninstall_assets(client_id, [asset], install_scope, tracker)
            for result in results:
                color = "green" if result.ok else "red"
                console.print(f"  [{color}]{client_id}[/{color}] {name} [dim]({result.message})[/dim]")
                failed = failed or result.status == FAILED

    tracker.save()
    if failed:
        raise SystemExit(1)


@cli.command(name='list')
def list_cmd():
    """List installed assets grouped by scope."""
    tracker = _load_tracker()
    if not tracker.assets:
        console.print("[yellow]No assets installed[/yellow]")
        return

    for scope_name, assets in sorted(tracker.group_by_scope().items()):
        console.print(f"[bold]{scope_name}[/bold] ({len(assets)}):")
        for asset in sorted(assets, key=lambda a: a.name):
            console.print(
                f"  [cyan]{asset.name}[/cyan] (v{asset.version}) "
                f"[dim]{asset.type} -> {', '.join(asset.clients)}[/dim]"
            )
        console.print()


@cli.command(name='verify')
@scope_options
def verify_cmd(scope: str, repo_root: Optional[str], repo_url: Optional[str], path: Optional[str]):
    """Check that tracked assets in a scope are still installed."""
    install_scope = _build_scope(scope, repo_root, repo_url, path)
    tracker = _load_tracker()
    assets = tracker.find_by_scope(install_scope.repository, install_scope.scoped_path)
    if not assets:
        console.print("[yellow]No assets installed in this scope[/yellow]")
        return

    missing = 0
    for asset in assets:
        for client_id in asset.clients:
            for result in verify_assets(client_id, [asset], install_scope):
                if result.installed:
                    console.print(f"  [green]{result.name}[/green] [dim]{client_id}[/dim]")
                else:
                    missing += 1
                    console.print(
                        f"  [red]{result.name}[/red] [dim]{client_id} ({result.message})[/dim]"
                    )
    if missing:
        raise SystemExit(1)


@cli.command(name='parse-rule')
@click.argument('rule_file', type=click.Path(exists=True, dir_okay=False))
@click.option('-t', '--to', 'target', type=CLIENT_CHOICE, required=True,
              help='Client format to convert to')
@click.option('--title', default='', help='Heading to add when the rule has none')
def parse_rule_cmd(rule_file: str, target: str, title: str):
    """Convert a rule file from one client's format to another's."""
    content = Path(rule_file).read_text()
    click.echo(RULES.convert(content, rule_file, target, title=title), nl=False)


@cli.group(name='hooks')
def hooks():
    """Manage skillpack's own session hooks."""
    pass


@hooks.command(name='install')
@click.option('-c', '--client', 'client_id', type=click.Choice(['claude-code']),
              default='claude-code', show_default=True)
def hooks_install(client_id: str):
    """Register the SessionStart hook that keeps assets up to date."""
    base = get_client(client_id).base_dir(InstallScope.global_scope())
    try:
        changed = install_system_hooks(base)
    except SkillpackError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    if changed:
        console.print(f"[green]Installed {client_id} session hook[/green]")
    else:
        console.print(f"[dim]{client_id} session hook already installed[/dim]")


@hooks.command(name='uninstall')
@click.option('-c', '--client', 'client_id', type=click.Choice(['claude-code']),
              default='claude-code', show_default=True)
def hooks_uninstall(client_id: str):
    """Remove skillpack's session hooks, including legacy ones."""
    base = get_client(client_id).base_dir(InstallScope.global_scope())
    try:
        removed = uninstall_system_hooks(base)
    except SkillpackError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    console.print(f"Removed {removed} hook{'s' if removed != 1 else ''}")


def main():
    cli()


if __name__ == '__main__':
    main()
