"""
deconz-bridge CLI - run the bridge and inspect the gateway.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import aiohttp
import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .buttons import (
    BUTTON_MAPS_URL,
    DEFAULT_DEVICES_DIR,
    PressConfigurationStore,
    fetch_button_maps,
    generate_configurations,
    write_configurations,
)
from .config import Config, default_data_dir, set_config
from .deconz.api import DeconzClient, GatewayError

console = Console()


def setup_logging(verbose: bool = False):
    """Set up logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler()]
    )


def run_async(coro):
    """Run an async function."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        return loop.run_until_complete(coro)


def load_config(host: Optional[str] = None, port: Optional[int] = None,
                data_dir: Optional[str] = None) -> Config:
    """Config file, then environment, then command line flags."""
    config = Config.load(Path(data_dir) if data_dir else default_data_dir()).apply_env()
    if host:
        config.gateway.host = host
    if port:
        config.gateway.port = port
    set_config(config)
    return config


@click.group()
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.pass_context
def main(ctx, verbose):
    """deCONZ to HomeKit bridge"""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    setup_logging(verbose)


@main.command()
@click.option('--host', '-h', help='Gateway host (overrides DECONZ_IP)')
@click.option('--port', '-p', type=int, help='Gateway REST port (overrides DECONZ_PORT)')
@click.option('--data-dir', type=click.Path(), help='Data directory (overrides STORAGE_PATH)')
def run(host: Optional[str], port: Optional[int], data_dir: Optional[str]):
    """Run the bridge."""
    from .bridge import BridgeRuntime

    config = load_config(host, port, data_dir)
    pincode = config.ensure_pincode()
    config.save()

    console.print(f"\n[bold blue]Starting deCONZ bridge[/bold blue]")
    console.print(f"   Gateway: {config.gateway.base_url}")
    console.print(f"   Data directory: {config.data_dir}")
    console.print(Panel(
        f"[bold yellow]{pincode}[/bold yellow]",
        title="HomeKit setup code",
        border_style="blue"
    ))
    console.print(f"   Press Ctrl+C to stop\n")

    runtime = BridgeRuntime(config)
    try:
        run_async(runtime.run_forever())
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped.[/dim]")
    except (GatewayError, aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
        console.print(f"[red]Bridge failed to start: {e}[/red]")
        sys.exit(1)


@main.command()
@click.option('--host', '-h', help='Gateway host (overrides DECONZ_IP)')
@click.option('--port', '-p', type=int, help='Gateway REST port (overrides DECONZ_PORT)')
@click.option('--data-dir', type=click.Path(), help='Data directory (overrides STORAGE_PATH)')
@click.option('--force', '-f', is_flag=True, help='Request a new key even if one is stored')
def pair(host: Optional[str], port: Optional[int], data_dir: Optional[str], force: bool):
    """Obtain and store a gateway API key."""
    config = load_config(host, port, data_dir)

    if config.gateway.api_key and not force:
        console.print("[yellow]An API key is already configured. Use --force to replace it.[/yellow]")
        return

    console.print(f"\n[bold]Requesting an API key from {config.gateway.base_url}[/bold]")
    console.print("   Unlock the gateway in Phoscon (Gateway > Advanced > Authenticate app)\n")

    async def do_pair():
        client = DeconzClient(config.gateway)
        try:
            return await client.request_api_key()
        finally:
            await client.close()

    try:
        api_key = run_async(do_pair())
    except (GatewayError, aiohttp.ClientError, asyncio.TimeoutError) as e:
        console.print(f"[red]Pairing failed: {e}[/red]")
        sys.exit(1)

    config.gateway.api_key = api_key
    config.save()
    console.print(f"[bold green]✓ API key stored in {config.config_path}[/bold green]")


@main.command()
@click.option('--host', '-h', help='Gateway host (overrides DECONZ_IP)')
@click.option('--port', '-p', type=int, help='Gateway REST port (overrides DECONZ_PORT)')
@click.option('--data-dir', type=click.Path(), help='Data directory (overrides STORAGE_PATH)')
def devices(host: Optional[str], port: Optional[int], data_dir: Optional[str]):
    """List gateway devices and which of their capabilities are bridged."""
    from .accessories.device import is_supported
    from .accessories.helpers import unique_id_to_aid

    config = load_config(host, port, data_dir)
    if not config.gateway.api_key:
        console.print("[red]No API key configured. Run 'deconz-bridge pair' first.[/red]")
        sys.exit(1)

    async def fetch():
        client = DeconzClient(config.gateway)
        try:
            return await client.get_all_devices()
        finally:
            await client.close()

    try:
        snapshot = run_async(fetch())
    except (GatewayError, aiohttp.ClientError, asyncio.TimeoutError) as e:
        console.print(f"[red]Could not list devices: {e}[/red]")
        sys.exit(1)

    table = Table(title=f"Devices ({len(snapshot)})")
    table.add_column("Name")
    table.add_column("Model", style="dim")
    table.add_column("AID", style="cyan")
    table.add_column("Capabilities")

    for device in snapshot:
        capabilities = []
        for subdevice in device.subdevices:
            if is_supported(subdevice.type):
                capabilities.append(f"[green]{subdevice.type}[/green]")
            else:
                capabilities.append(f"[dim]{subdevice.type}[/dim]")
        table.add_row(
            device.display_name,
            f"{device.manufacturer} {device.model}".strip(),
            str(unique_id_to_aid(device.unique_id)),
            ", ".join(capabilities) or "[dim]none[/dim]",
        )

    console.print(table)


@main.group()
def buttons():
    """Button configuration commands."""
    pass


@buttons.command('list')
@click.option('--devices-dir', type=click.Path(), help='Descriptor directory (overrides DEVICES_DIR)')
def buttons_list(devices_dir: Optional[str]):
    """Show the loaded button configurations."""
    directory = Path(devices_dir) if devices_dir else (load_config().devices_dir or DEFAULT_DEVICES_DIR)
    store = PressConfigurationStore(directory)

    table = Table(title=f"Button configurations in {directory}")
    table.add_column("Model", style="cyan")
    table.add_column("Manufacturer")
    table.add_column("Buttons")

    for model in store.models():
        config = store.get(model)
        names = ", ".join(f"{b.name} ({len(b.event_map)})" for b in config.buttons)
        table.add_row(model, config.manufacturer, names)

    console.print(table)
    if not len(store):
        console.print("[yellow]No button configurations found.[/yellow]")


@buttons.command('generate')
@click.option('--url', default=BUTTON_MAPS_URL, show_default=True, help='button_maps.json location')
@click.option('--output', '-o', type=click.Path(), default=str(DEFAULT_DEVICES_DIR), show_default=True,
              help='Directory to write descriptors to')
def buttons_generate(url: str, output: str):
    """Generate button configurations from deCONZ's button_maps.json."""
    console.print(f"Fetching {url}")

    try:
        button_maps = run_async(fetch_button_maps(url))
    except (aiohttp.ClientError, asyncio.TimeoutError, RuntimeError, ValueError) as e:
        console.print(f"[red]Could not fetch button maps: {e}[/red]")
        sys.exit(1)

    configs = generate_configurations(button_maps)
    written = write_configurations(configs, Path(output))
    console.print(f"[bold green]✓ Wrote {len(written)} configurations to {output}[/bold green]")


if __name__ == '__main__':
    main()
