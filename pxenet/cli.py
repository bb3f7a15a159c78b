#!/usr/bin/env python3
# pxenet/cli.py
from __future__ import annotations

"""Command line entry point for ``pxenet``."""

from pathlib import Path
from typing import Any

import click

from pxenet import PxenetError, __version__
from pxenet.ui import colorize, format_table, print_line

__all__ = ["main"]


def _overrides(ctx: click.Context) -> dict[str, Any]:
    return dict(ctx.obj["overrides"])


def _load(ctx: click.Context):
    from pxenet.boot import load_boot_catalog
    from pxenet.db import load_config

    try:
        config = load_config(cwd=ctx.obj["cwd"], overrides=_overrides(ctx))
        return config, load_boot_catalog(config)
    except PxenetError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.version_option(__version__, prog_name="pxenet")
@click.option("--config-dir", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Directory holding .env/config.ini/config.json/config.toml (default: CWD)")
@click.option("--server-address", default=None, help="Address handed to PXE clients")
@click.option("--bind-address", default=None, help="Address the services listen on")
@click.option("--http-root", default=None, help="Directory served over HTTP")
@click.option("--tftp-root", default=None, help="Directory served over TFTP")
@click.option("--catalog", "catalog_file", default=None, help="Catalog file (TOML or JSON)")
@click.option("--log-level", default=None,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False))
@click.pass_context
def main(ctx: click.Context, config_dir: Path | None, **options: Any) -> None:
    """Network boot server with an iPXE operating-system menu."""
    ctx.ensure_object(dict)
    ctx.obj["cwd"] = config_dir
    ctx.obj["overrides"] = {k: v for k, v in options.items() if v is not None}


@main.command()
@click.pass_context
def serve(ctx: click.Context) -> None:
    """Run ProxyDHCP, TFTP and HTTP until interrupted."""
    from pxenet.boot import boot_sequence
    from pxenet.server import BootServer, set_active_server

    try:
        state = boot_sequence(_overrides(ctx), cwd=ctx.obj["cwd"])
    except PxenetError as exc:
        raise click.ClickException(str(exc)) from exc

    server = BootServer(state.config, state.catalog)
    server.start()
    set_active_server(server)
    try:
        server.wait()
    finally:
        set_active_server(None)


@main.command()
@click.option("--no-serve", is_flag=True, help="Open the console without starting the services")
@click.pass_context
def console(ctx: click.Context, no_serve: bool) -> None:
    """Start the services and open the operator console."""
    from pxenet.boot import boot_sequence
    from pxenet.interface import repl
    from pxenet.server import BootServer, set_active_server

    try:
        state = boot_sequence(_overrides(ctx), with_console=True, cwd=ctx.obj["cwd"])
    except PxenetError as exc:
        raise click.ClickException(str(exc)) from exc

    server = BootServer(state.config, state.catalog)
    set_active_server(server)
    if not no_serve:
        server.start()
    try:
        repl(on_exit=server.stop)
    finally:
        set_active_server(None)


@main.command()
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write the script here instead of stdout")
@click.pass_context
def render(ctx: click.Context, output: Path | None) -> None:
    """Print the iPXE menu script."""
    from pxenet.menu import render_script

    _config, catalog = _load(ctx)
    try:
        text = render_script(catalog)
    except PxenetError as exc:
        raise click.ClickException(str(exc)) from exc
    if output is None:
        click.echo(text, nl=False)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    click.echo(f"Wrote {output}")


@main.command()
@click.option("--remote", is_flag=True, help="Also HEAD every file at the base URL")
@click.option("--no-local", is_flag=True, help="Skip the HTTP root file check")
@click.pass_context
def check(ctx: click.Context, remote: bool, no_local: bool) -> None:
    """Verify the catalog; exits 1 when any error is found."""
    from pxenet.menu import check_catalog

    config, catalog = _load(ctx)
    report = check_catalog(
        catalog,
        http_root=None if no_local else config.http_root,
        remote=remote,
        timeout=config.timeout,
    )
    if report.findings:
        rows = [[f.severity, f.target or "-", f.message] for f in report.findings]
        print_line(format_table(rows, headers=["Severity", "Target", "Finding"]))
    status = "OK" if report.ok else "FAILED"
    summary = (f"{status}: {len(catalog.targets)} targets, {report.checked_files} file references, "
               f"{len(report.errors())} error(s)")
    print_line(colorize(summary, "green" if report.ok else "red"))
    if not report.ok:
        ctx.exit(1)


@main.command()
@click.option("--force", is_flag=True, help="Overwrite an existing catalog.toml/config.toml")
@click.pass_context
def init(ctx: click.Context, force: bool) -> None:
    """Create the root directories, a default catalog.toml and config.toml."""
    from pxenet.db import load_config, write_default_config
    from pxenet.menu import default_catalog, dump_catalog_toml
    from pxenet.server import ensure_roots

    base = (ctx.obj["cwd"] or Path.cwd()).resolve()
    base.mkdir(parents=True, exist_ok=True)
    overrides = _overrides(ctx)
    catalog_rel = overrides.get("catalog_file") or "catalog.toml"
    catalog_path = base / catalog_rel
    config_path = base / "config.toml"

    try:
        config = load_config(cwd=base, overrides=overrides)
        for path in ensure_roots(config):
            click.echo(f"Created {path}")

        if catalog_path.exists() and not force:
            click.echo(f"Keeping existing {catalog_path}")
        else:
            catalog_path.write_text(dump_catalog_toml(default_catalog(config.base_url)),
                                    encoding="utf-8")
            click.echo(f"Wrote {catalog_path}")

        if config_path.exists() and not force:
            click.echo(f"Keeping existing {config_path}")
        else:
            values = {k.upper(): v for k, v in overrides.items()}
            values["CATALOG_FILE"] = str(catalog_rel)
            write_default_config(config_path, **values)
            click.echo(f"Wrote {config_path}")
    except (PxenetError, OSError) as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo("Copy ipxe.efi and undionly.kpxe into the TFTP root and the boot files into the HTTP root.")


if __name__ == "__main__":  # pragma: no cover
    main()
