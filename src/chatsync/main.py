import logging
from collections.abc import Sequence
from pathlib import Path
from sys import exit
from typing import Annotated, Any, final, override

import typer
from typer.core import TyperGroup

from chatsync.exceptions import SyncError
from chatsync.settings import ForceDirection, ProviderType


@final
class ErrorReportingGroup(TyperGroup):
    @override
    def main(  # pyright: ignore[reportAny]
        self,
        args: Sequence[str] | None = None,
        prog_name: str | None = None,
        complete_var: str | None = None,
        standalone_mode: bool = True,
        windows_expand_args: bool = True,
        **extra: Any,  # pyright: ignore[reportAny, reportExplicitAny]
    ) -> Any:  # pyright: ignore[reportExplicitAny]
        try:
            return super().main(args, prog_name, complete_var, standalone_mode, windows_expand_args, **extra)  #  pyright: ignore[reportAny]
        except SyncError as e:
            typer.secho(f"Error: {e.message}", err=True, fg=typer.colors.RED)
            exit(e.exit_code)
        except Exception as e:
            typer.secho("Unexpected Internal Error", err=True, fg=typer.colors.RED)
            typer.echo(str(e), err=True)
            exit(1)


app = typer.Typer(cls=ErrorReportingGroup, no_args_is_help=True)


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log sync activity to stderr.")] = False,
) -> None:
    """
    Synchronize local chat data with a remote backend.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command("sync")
def sync(
    force: Annotated[
        bool | None,
        typer.Option(
            "--force/--no-force",
            help="Replace instead of merging. Defaults to the saved force-sync setting.",
        ),
    ] = None,
) -> None:
    """
    Merge local and remote state and push the result.
    """
    from chatsync.commands import sync

    sync.sync(force)


@app.command("check")
def check() -> None:
    """
    Check that the configured remote backend is reachable.
    """
    from chatsync.commands import check

    check.check()


@app.command("status")
def status() -> None:
    """
    Show sync settings and the last successful sync.
    """
    from chatsync.commands import status

    status.status()


@app.command("export")
def export(
    dest: Annotated[Path, typer.Option(help="Directory to write the backup into.")] = Path("."),
) -> None:
    """
    Write a backup of all local stores to a timestamped JSON file.
    """
    from chatsync.commands import export

    export.export(dest)


@app.command("import")
def import_(
    file_path: Annotated[Path, typer.Argument(help="A backup file produced by 'chatsync export'.")],
    force: Annotated[
        bool | None,
        typer.Option(
            "--force/--no-force",
            help="Replace local state with the backup instead of merging.",
        ),
    ] = None,
) -> None:
    """
    Merge a backup file into the local stores.
    """
    from chatsync.commands import import_backup

    import_backup.import_backup(file_path, force)


@app.command("configure")
def configure(
    provider: Annotated[ProviderType | None, typer.Option(help="Remote backend to sync with.")] = None,
    endpoint: Annotated[str | None, typer.Option(help="Base URL of the backend.")] = None,
    username: Annotated[
        str | None, typer.Option(help="Username (webdav) or store key (upstash).")
    ] = None,
    secret: Annotated[str | None, typer.Option(help="Password (webdav) or API key (upstash).")] = None,
    proxy_url: Annotated[str | None, typer.Option(help="Forward proxy for all sync requests.")] = None,
    use_proxy: Annotated[bool | None, typer.Option("--use-proxy/--no-proxy")] = None,
    force_sync: Annotated[bool | None, typer.Option("--force-sync/--no-force-sync")] = None,
    force_direction: Annotated[
        ForceDirection | None, typer.Option(help="Which side wins when force sync is on.")
    ] = None,
) -> None:
    """
    Update the saved sync settings.
    """
    from chatsync.commands import configure

    configure.configure(provider, endpoint, username, secret, proxy_url, use_proxy, force_sync, force_direction)


@app.command("drop-remote")
def drop_remote(
    yes: Annotated[bool, typer.Option("--yes", help="Confirm deleting every remote key for this store.")] = False,
) -> None:
    """
    Delete all remote keys of the configured upstash store.
    """
    from chatsync.commands import drop_remote

    drop_remote.drop_remote(yes)
