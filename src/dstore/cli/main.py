"""CLI interface for decentralized storage gateways."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from ..core.api import StorageAPI
from ..core.config import load_config
from ..core.exceptions import DStoreError
from ..core.models import FileInfo
from ..core.progress import RichProgressReporter

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] %(levelname)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

# Rich console for pretty output
console = Console()


def format_size(size: int) -> str:
    """Human readable byte count."""
    if size < 1024:
        return f"{size} B"
    elif size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    elif size < 1024 * 1024 * 1024:
        return f"{size / (1024 * 1024):.1f} MB"
    return f"{size / (1024 * 1024 * 1024):.1f} GB"


def fail(error: Exception) -> None:
    """Print an error and exit with status 1."""
    console.print(f"[red]Error: {escape(str(error))}[/red]")
    sys.exit(1)


def get_api(ctx) -> StorageAPI:
    """Build the storage API from the config selected on the command line."""
    if ctx.obj.get("api") is None:
        config = load_config(ctx.obj["config_path"])
        ctx.obj["api"] = StorageAPI(config)
        ctx.call_on_close(ctx.obj["api"].close)
    return ctx.obj["api"]


def run_step(description: str, func, *args):
    """Run a short request behind a spinner."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task(description, total=None)
        result = func(*args)
        progress.update(task, completed=1)
    return result


def print_file_info(title: str, info: FileInfo) -> None:
    table = Table(title=title, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Name", info.name)
    table.add_row("Content ID", info.content_id)
    table.add_row("Size", f"{format_size(info.size)} ({info.size} bytes)")
    table.add_row("MIME type", info.mime_type or "-")
    table.add_row("Encrypted", "yes" if info.encryption else "no")
    console.print(table)


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    envvar="DSTORE_CONFIG",
    help="Config file (default: ~/.config/dstore/config.yaml)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx, config_path, verbose):
    """dstore - Move files to and from decentralized storage gateways."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["api"] = None


@cli.command()
@click.pass_context
def login(ctx):
    """Check the configured dfs account by logging in."""
    try:
        api = get_api(ctx)
        client = run_step("Logging in...", lambda: api.pods)
        console.print(
            f"[green]✓[/green] Logged in to {client.endpoint} as [bold]{client.username}[/bold]"
        )
    except DStoreError as e:
        fail(e)


@cli.group()
def pod():
    """Create, open, share and import pods."""


@pod.command("new")
@click.argument("name")
@click.pass_context
def pod_new(ctx, name):
    """Create a pod."""
    try:
        run_step(f"Creating pod {name}...", get_api(ctx).create_pod, name)
        console.print(f"[green]✓[/green] Created pod [cyan]{name}[/cyan]")
    except DStoreError as e:
        fail(e)


@pod.command("open")
@click.argument("name")
@click.pass_context
def pod_open(ctx, name):
    """Open a pod."""
    try:
        run_step(f"Opening pod {name}...", get_api(ctx).open_pod, name)
        console.print(f"[green]✓[/green] Opened pod [cyan]{name}[/cyan]")
    except DStoreError as e:
        fail(e)


@pod.command("share")
@click.argument("name")
@click.pass_context
def pod_share(ctx, name):
    """Share a pod and print its sharing reference."""
    try:
        reference = run_step(f"Sharing pod {name}...", get_api(ctx).share_pod, name)
        console.print(f"[green]✓[/green] Shared pod [cyan]{name}[/cyan]")
        console.print(f"  Reference: {reference}")
    except DStoreError as e:
        fail(e)


@pod.command("receive")
@click.argument("reference")
@click.pass_context
def pod_receive(ctx, reference):
    """Import a pod shared with you."""
    try:
        run_step("Importing pod...", get_api(ctx).import_pod, reference)
        console.print("[green]✓[/green] Pod imported")
    except DStoreError as e:
        fail(e)


@cli.command()
@click.argument("local_path", type=click.Path(exists=True, dir_okay=False))
@click.argument("pod_name")
@click.option("--dir", "dir_path", default="/", help="Remote directory (default: /)")
@click.pass_context
def upload(ctx, local_path, pod_name, dir_path):
    """Upload a file into a pod."""
    try:
        api = get_api(ctx)
        console.print(
            f"Uploading [cyan]{local_path}[/cyan] to [green]{pod_name}:{dir_path}[/green]"
        )
        with RichProgressReporter(console=console) as reporter:
            result = api.upload_file(local_path, pod_name, dir_path, reporter=reporter)
        console.print("[green]✓[/green] Upload completed successfully!")
        console.print(f"  Remote: {result.content_id} ({format_size(result.size)})")
    except DStoreError as e:
        fail(e)


@cli.command()
@click.argument("pod_name")
@click.argument("remote_path")
@click.option(
    "--local-path", help="Local path to save file (default: same as remote filename)"
)
@click.pass_context
def download(ctx, pod_name, remote_path, local_path):
    """Download a file from a pod."""
    try:
        api = get_api(ctx)
        if not local_path:
            local_path = Path(remote_path).name
        console.print(
            f"Downloading [cyan]{pod_name}:{remote_path}[/cyan] to [green]{local_path}[/green]"
        )
        with RichProgressReporter(console=console) as reporter:
            result = api.download_file(pod_name, remote_path, local_path, reporter=reporter)
        console.print("[green]✓[/green] Download completed successfully!")
        console.print(f"  Saved {format_size(result.size)} to {result.local_path}")
    except DStoreError as e:
        fail(e)


@cli.command()
@click.argument("pod_name")
@click.argument("remote_path")
@click.pass_context
def stat(ctx, pod_name, remote_path):
    """Show metadata of a file in a pod."""
    try:
        api = get_api(ctx)
        api.open_pod(pod_name)
        info = run_step("Fetching file info...", api.pods.stat_file, pod_name, remote_path)
        print_file_info(f"{pod_name}:{remote_path}", info)
    except DStoreError as e:
        fail(e)


@cli.command("upload-dir")
@click.argument("local_dir", type=click.Path(exists=True, file_okay=False))
@click.argument("pod_name")
@click.option("--remote-dir", default="/", help="Remote directory (default: /)")
@click.option("--exclude", multiple=True, help="Glob of relative paths to skip (repeatable)")
@click.option("--workers", default=4, show_default=True, help="Parallel uploads")
@click.pass_context
def upload_dir(ctx, local_dir, pod_name, remote_dir, exclude, workers):
    """Upload a directory tree into a pod."""
    try:
        api = get_api(ctx)
        api.open_pod(pod_name)
        with RichProgressReporter(console=console) as reporter:
            results = api.pods.upload_directory(
                pod_name,
                local_dir,
                remote_dir,
                exclude_patterns=list(exclude),
                max_workers=workers,
                reporter=reporter,
            )
        total = sum(result.size for result in results.values())
        console.print(
            f"[green]✓[/green] Uploaded {len(results)} files ({format_size(total)})"
        )
    except DStoreError as e:
        fail(e)


@cli.group()
def lighthouse():
    """Content-addressed storage on Lighthouse."""


@lighthouse.command("upload")
@click.argument("local_path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def lighthouse_upload(ctx, local_path):
    """Upload a file and print its CID."""
    try:
        api = get_api(ctx)
        with RichProgressReporter(console=console) as reporter:
            result = api.add_file(local_path, reporter=reporter)
        console.print("[green]✓[/green] Upload completed successfully!")
        console.print(f"  CID: [cyan]{result.content_id}[/cyan]")
        console.print(f"  Size: {format_size(result.size)}")
    except DStoreError as e:
        fail(e)


@lighthouse.command("info")
@click.argument("cid")
@click.pass_context
def lighthouse_info(ctx, cid):
    """Show metadata of a CID."""
    try:
        info = run_step("Fetching file info...", get_api(ctx).file_info, cid)
        print_file_info(cid, info)
    except DStoreError as e:
        fail(e)


@lighthouse.command("download")
@click.argument("cid")
@click.option("--local-path", help="Local path to save file (default: the CID)")
@click.pass_context
def lighthouse_download(ctx, cid, local_path):
    """Download the content behind a CID."""
    try:
        api = get_api(ctx)
        with RichProgressReporter(console=console) as reporter:
            result = api.get_file(cid, local_path, reporter=reporter)
        console.print("[green]✓[/green] Download completed successfully!")
        console.print(f"  Saved {format_size(result.size)} to {result.local_path}")
    except DStoreError as e:
        fail(e)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
