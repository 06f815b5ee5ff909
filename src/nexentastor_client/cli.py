"""Command-line interface for interacting with NexentaStor appliances."""
from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import typer

try:  # pragma: no cover - exercised in runtime environments
    from rich import box
    from rich.console import Console
    from rich.table import Table
except ImportError as exc:  # pragma: no cover - optional dependency guard
    raise RuntimeError(
        "The CLI requires Rich for table rendering. Install the CLI extras via "
        "'pip install nexentastor-python[cli]' to enable this command."
    ) from exc

from . import __version__
from .cli_schema import CLI_TABLE_VIEWS, TableView
from .cluster import NexentaStorCluster
from .config import DriverConfig
from .exceptions import ConfigurationError, NexentaStorError
from .models import ACLRuleSet
from .provider import NexentaStorProvider

app = typer.Typer(help="NexentaStor storage management CLI.", no_args_is_help=True)

pools_app = typer.Typer(help="Pool operations.")
filesystems_app = typer.Typer(help="Filesystem operations.")
nfs_app = typer.Typer(help="NFS share operations.")
acl_app = typer.Typer(help="Filesystem ACL operations.")
jobs_app = typer.Typer(help="Asynchronous job operations.")
app.add_typer(pools_app, name="pools")
app.add_typer(filesystems_app, name="filesystems")
app.add_typer(nfs_app, name="nfs")
app.add_typer(acl_app, name="acl")
app.add_typer(jobs_app, name="jobs")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"nexentastor {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log requests to stderr."),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Print the version and exit.",
    ),
) -> None:
    """NexentaStor storage management CLI."""

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def _build_provider(
    address: str | None,
    username: str | None,
    password: str | None,
    config_path: Path | None,
    verify_ssl: bool,
    cert_path: Path | None,
    timeout: float,
) -> NexentaStorProvider | NexentaStorCluster:
    base: DriverConfig | None = None
    if config_path:
        try:
            base = DriverConfig.from_file(config_path)
        except ConfigurationError as exc:
            raise typer.BadParameter(str(exc)) from exc

    address = address or (base.address if base else None)
    username = username or (base.username if base else None)
    password = password or (base.password if base else None)
    if not address:
        raise typer.BadParameter("--address is required (or set 'address' in --config).")
    if not username or not password:
        raise typer.BadParameter("--username and --password are required (or set them in --config).")

    verify_target: bool | str
    if cert_path:
        expanded_cert = cert_path.expanduser()
        if not expanded_cert.exists():
            raise typer.BadParameter("Certificate file not found for --cert option.")
        if not verify_ssl:
            raise typer.BadParameter("Cannot combine --cert with --no-verify.")
        verify_target = str(expanded_cert)
    else:
        verify_target = verify_ssl

    driver_config = DriverConfig(
        address=address,
        username=username,
        password=password,
        default_dataset=base.default_dataset if base else None,
        default_data_ip=base.default_data_ip if base else None,
        verify_ssl=verify_target,
        timeout=timeout,
    )
    try:
        return driver_config.build_provider()
    except ConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2))


console = Console(force_terminal=False, color_system=None)


def _render_rich_table(view: TableView, rows: Sequence[Mapping[str, Any]]) -> None:
    table = Table(
        title=view.title,
        box=box.SIMPLE,
        show_lines=False,
        header_style="bold cyan",
    )
    for column in view.columns:
        table.add_column(column.header, justify=column.justify)
    ordered_rows = list(rows)
    if view.sort_key:
        ordered_rows.sort(key=view.sort_key)
    for row in ordered_rows:
        table.add_row(*(column.render(row) for column in view.columns))
    console.print(table)


def _present_output(rows: list[dict[str, Any]], *, view_id: str, json_output: bool) -> None:
    view = CLI_TABLE_VIEWS.get(view_id)
    if json_output or not view or not rows:
        _echo_json(rows)
        return
    _render_rich_table(view, rows)


def _handle_error(exc: NexentaStorError) -> None:
    status = f" (status {exc.status_code})" if exc.status_code else ""
    typer.secho(f"Request failed{status}: {exc}", err=True, fg=typer.colors.RED)
    raise typer.Exit(code=1)


def _report_job(job_id: str | None, action: str) -> None:
    if job_id:
        typer.echo(f"{action} accepted as job {job_id}")
    else:
        typer.secho(f"{action} done.", fg=typer.colors.GREEN)


def _coerce_simple(value: str) -> Any:
    v = value.strip()
    if not v:
        return ""
    low = v.lower()
    if low in {"true", "yes", "on"}:
        return True
    if low in {"false", "no", "off"}:
        return False
    if low in {"null", "none"}:
        return None
    try:
        if "." in v:
            return float(v)
        return int(v)
    except ValueError:
        return v


def parse_extras(s: str | None) -> dict[str, Any]:
    """Parse comma-separated key=value pairs into a dict with simple coercion."""
    out: dict[str, Any] = {}
    if not s:
        return out
    parts = [p.strip() for p in s.split(",") if p.strip()]
    for part in parts:
        if "=" in part:
            key, val = part.split("=", 1)
            out[key.strip()] = _coerce_simple(val)
        else:
            out[part] = True
    return out


def _shared_options() -> dict[str, Any]:  # pragma: no cover - helper indirection
    return {
        "address": typer.Option(
            None,
            "--address",
            envvar="NEXENTASTOR_ADDRESS",
            help="NexentaStor API address(es), comma-separated: https://host:8443,...",
        ),
        "username": typer.Option(
            None,
            "--username",
            "-u",
            envvar="NEXENTASTOR_USERNAME",
            help="NexentaStor API username.",
        ),
        "password": typer.Option(
            None,
            "--password",
            "-p",
            envvar="NEXENTASTOR_PASSWORD",
            help="NexentaStor API password.",
            hide_input=True,
        ),
        "config_path": typer.Option(
            None,
            "--config",
            "-c",
            envvar="NEXENTASTOR_CONFIG",
            help="YAML driver configuration file; command-line values take precedence.",
        ),
        "verify_ssl": typer.Option(
            True,
            "--verify/--no-verify",
            envvar="NEXENTASTOR_VERIFY_SSL",
            help="Enable or disable TLS certificate verification.",
            show_default=True,
        ),
        "cert_path": typer.Option(
            None,
            "--cert",
            envvar="NEXENTASTOR_CA_CERT",
            help="Path to a custom CA bundle for TLS verification.",
        ),
        "timeout": typer.Option(30.0, help="Request timeout (seconds).", show_default=True),
        "output_json": typer.Option(
            False,
            "--json",
            "-j",
            help="Return raw JSON instead of rendering a table.",
        ),
    }


_SHARED_OPTIONS = _shared_options()


@pools_app.command("list")
def pools_list(
    address: str | None = _SHARED_OPTIONS["address"],
    username: str | None = _SHARED_OPTIONS["username"],
    password: str | None = _SHARED_OPTIONS["password"],
    config_path: Path | None = _SHARED_OPTIONS["config_path"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
    output_json: bool = _SHARED_OPTIONS["output_json"],
) -> None:
    """List storage pools with their health."""

    with _build_provider(
        address, username, password, config_path, verify_ssl, cert_path, timeout
    ) as provider:
        try:
            pools = provider.get_pool_statuses()
        except NexentaStorError as exc:
            _handle_error(exc)
            return
    _present_output([pool.as_dict() for pool in pools], view_id="pools.list", json_output=output_json)


@filesystems_app.command("get")
def filesystems_get(
    path: str = typer.Argument(..., help="Filesystem path, e.g. pool/dataset/fs."),
    address: str | None = _SHARED_OPTIONS["address"],
    username: str | None = _SHARED_OPTIONS["username"],
    password: str | None = _SHARED_OPTIONS["password"],
    config_path: Path | None = _SHARED_OPTIONS["config_path"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
) -> None:
    """Show one filesystem."""

    with _build_provider(
        address, username, password, config_path, verify_ssl, cert_path, timeout
    ) as provider:
        try:
            filesystem = provider.get_filesystem(path)
        except NexentaStorError as exc:
            _handle_error(exc)
            return
    if filesystem is None:
        typer.secho(f"Filesystem '{path}' not found.", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)
    _echo_json(filesystem.as_dict())


@filesystems_app.command("list")
def filesystems_list(
    parent: str = typer.Argument(..., help="Parent filesystem path."),
    address: str | None = _SHARED_OPTIONS["address"],
    username: str | None = _SHARED_OPTIONS["username"],
    password: str | None = _SHARED_OPTIONS["password"],
    config_path: Path | None = _SHARED_OPTIONS["config_path"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
    output_json: bool = _SHARED_OPTIONS["output_json"],
) -> None:
    """List filesystems below a parent."""

    with _build_provider(
        address, username, password, config_path, verify_ssl, cert_path, timeout
    ) as provider:
        try:
            filesystems = provider.get_filesystems(parent)
        except NexentaStorError as exc:
            _handle_error(exc)
            return
    _present_output(
        [filesystem.as_dict() for filesystem in filesystems],
        view_id="filesystems.list",
        json_output=output_json,
    )


@filesystems_app.command("create")
def filesystems_create(
    path: str = typer.Argument(..., help="Filesystem path to create."),
    quota: int | None = typer.Option(None, "--quota", help="Quota size in bytes."),
    extras: str | None = typer.Option(
        None,
        "--extras",
        help="Comma-separated key=value pairs to include in the payload (e.g. compressionMode=lz4).",
        show_default=False,
    ),
    address: str | None = _SHARED_OPTIONS["address"],
    username: str | None = _SHARED_OPTIONS["username"],
    password: str | None = _SHARED_OPTIONS["password"],
    config_path: Path | None = _SHARED_OPTIONS["config_path"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
) -> None:
    """Create a filesystem."""

    params = parse_extras(extras)
    if quota is not None:
        params["quotaSize"] = quota
    with _build_provider(
        address, username, password, config_path, verify_ssl, cert_path, timeout
    ) as provider:
        try:
            job_id = provider.create_filesystem(path, params)
        except NexentaStorError as exc:
            _handle_error(exc)
            return
    _report_job(job_id, f"Create filesystem '{path}'")


@filesystems_app.command("destroy")
def filesystems_destroy(
    path: str = typer.Argument(..., help="Filesystem path to destroy."),
    address: str | None = _SHARED_OPTIONS["address"],
    username: str | None = _SHARED_OPTIONS["username"],
    password: str | None = _SHARED_OPTIONS["password"],
    config_path: Path | None = _SHARED_OPTIONS["config_path"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
) -> None:
    """Destroy a filesystem."""

    with _build_provider(
        address, username, password, config_path, verify_ssl, cert_path, timeout
    ) as provider:
        try:
            job_id = provider.destroy_filesystem(path)
        except NexentaStorError as exc:
            _handle_error(exc)
            return
    _report_job(job_id, f"Destroy filesystem '{path}'")


@nfs_app.command("create")
def nfs_create(
    path: str = typer.Argument(..., help="Filesystem path to share."),
    address: str | None = _SHARED_OPTIONS["address"],
    username: str | None = _SHARED_OPTIONS["username"],
    password: str | None = _SHARED_OPTIONS["password"],
    config_path: Path | None = _SHARED_OPTIONS["config_path"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
) -> None:
    """Share a filesystem over NFS."""

    with _build_provider(
        address, username, password, config_path, verify_ssl, cert_path, timeout
    ) as provider:
        try:
            job_id = provider.create_nfs_share(path)
        except NexentaStorError as exc:
            _handle_error(exc)
            return
    _report_job(job_id, f"Create NFS share '{path}'")


@nfs_app.command("delete")
def nfs_delete(
    path: str = typer.Argument(..., help="Filesystem path whose share is removed."),
    address: str | None = _SHARED_OPTIONS["address"],
    username: str | None = _SHARED_OPTIONS["username"],
    password: str | None = _SHARED_OPTIONS["password"],
    config_path: Path | None = _SHARED_OPTIONS["config_path"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
) -> None:
    """Remove the NFS share of a filesystem."""

    with _build_provider(
        address, username, password, config_path, verify_ssl, cert_path, timeout
    ) as provider:
        try:
            job_id = provider.delete_nfs_share(path)
        except NexentaStorError as exc:
            _handle_error(exc)
            return
    _report_job(job_id, f"Delete NFS share '{path}'")


@acl_app.command("set")
def acl_set(
    path: str = typer.Argument(..., help="Filesystem path."),
    read_only: bool = typer.Option(
        False,
        "--read-only/--read-write",
        help="Grant everyone@ read access only, or full access.",
        show_default=True,
    ),
    address: str | None = _SHARED_OPTIONS["address"],
    username: str | None = _SHARED_OPTIONS["username"],
    password: str | None = _SHARED_OPTIONS["password"],
    config_path: Path | None = _SHARED_OPTIONS["config_path"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
) -> None:
    """Apply the read-only or read-write ACL rule set to a filesystem."""

    rule_set = ACLRuleSet.READ_ONLY if read_only else ACLRuleSet.READ_WRITE
    with _build_provider(
        address, username, password, config_path, verify_ssl, cert_path, timeout
    ) as provider:
        try:
            job_id = provider.set_filesystem_acl(path, rule_set)
        except NexentaStorError as exc:
            _handle_error(exc)
            return
    _report_job(job_id, f"Set {rule_set.value} ACL on '{path}'")


@jobs_app.command("status")
def jobs_status(
    job_id: str = typer.Argument(..., help="Job identifier."),
    address: str | None = _SHARED_OPTIONS["address"],
    username: str | None = _SHARED_OPTIONS["username"],
    password: str | None = _SHARED_OPTIONS["password"],
    config_path: Path | None = _SHARED_OPTIONS["config_path"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
) -> None:
    """Check a job once."""

    with _build_provider(
        address, username, password, config_path, verify_ssl, cert_path, timeout
    ) as provider:
        try:
            done = provider.is_job_done(job_id)
        except NexentaStorError as exc:
            _handle_error(exc)
            return
    typer.echo(f"Job {job_id}: {'done' if done else 'running'}")


@jobs_app.command("wait")
def jobs_wait(
    job_id: str = typer.Argument(..., help="Job identifier."),
    interval: float = typer.Option(1.0, "--interval", help="Seconds between checks."),
    wait_timeout: float | None = typer.Option(
        None, "--wait-timeout", help="Give up after this many seconds."
    ),
    address: str | None = _SHARED_OPTIONS["address"],
    username: str | None = _SHARED_OPTIONS["username"],
    password: str | None = _SHARED_OPTIONS["password"],
    config_path: Path | None = _SHARED_OPTIONS["config_path"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
) -> None:
    """Wait until a job completes."""

    with _build_provider(
        address, username, password, config_path, verify_ssl, cert_path, timeout
    ) as provider:
        try:
            provider.wait_for_job(job_id, interval=interval, timeout=wait_timeout)
        except NexentaStorError as exc:
            _handle_error(exc)
            return
    typer.secho(f"Job {job_id} is done.", fg=typer.colors.GREEN)
