"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
import math
from pathlib import Path

import typer

from connectblue.core.config_loader import load_config
from connectblue.core.errors import ConfigError, ConnectblueError
from connectblue.core.model import (
    DEFAULT_CONNECT_TIMEOUT_S,
    DEFAULT_POLL_INTERVAL_S,
    AppConfig,
    RouteState,
    TargetDevice,
)
from connectblue.core.service import RouteService

LOGGER = logging.getLogger(__name__)

EPILOG = (
    "Examples:\n\n"
    "  connectblue 00:A4:1C:CA:4B:D9 'JBL Tune 770NC'\n\n"
    "  connectblue --address 00:A4:1C:CA:4B:D9 --name 'JBL Tune 770NC' --timeout 30"
)

app = typer.Typer(
    help="Connect a Bluetooth headset and route macOS audio output to it",
    add_completion=False,
)


def _configure_logging(verbose: bool, quiet: bool) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format="[%(name)s] %(message)s")


def _build_service(config: AppConfig) -> RouteService:
    return RouteService(bluetooth_transport=config.bluetooth_transport)


def _resolve_target(
    config: AppConfig,
    *,
    profile: str | None,
    address: str | None,
    name: str | None,
    timeout: float | None,
    poll_interval: float | None,
) -> TargetDevice:
    base: TargetDevice | None = None
    profile_name = profile or config.default_profile
    if profile_name is not None:
        base = config.profiles.get(profile_name)
        if base is None:
            available = ", ".join(sorted(config.profiles)) or "<none>"
            raise ConfigError(f"Unknown profile '{profile_name}'. Available: {available}")

    address = address or (base.address if base else None)
    name = name or (base.display_name if base else None)
    if not address or not name:
        raise ConfigError("No target device. Pass ADDRESS and NAME, or configure a profile.")

    if timeout is None:
        timeout = base.connect_timeout_s if base else DEFAULT_CONNECT_TIMEOUT_S
    if poll_interval is None:
        poll_interval = base.poll_interval_s if base else DEFAULT_POLL_INTERVAL_S
    if not (math.isfinite(timeout) and math.isfinite(poll_interval)) or timeout <= 0 or poll_interval <= 0:
        raise ConfigError("Timeout and poll interval must be positive finite numbers")

    return TargetDevice(
        address=address,
        display_name=name,
        connect_timeout_s=timeout,
        poll_interval_s=poll_interval,
    )


def _list_outputs(service: RouteService) -> None:
    outputs = service.list_outputs()
    if not outputs:
        typer.echo("No audio output devices found")
        return

    current = service.default_output()
    for device in outputs:
        marker = "*" if current is not None and current.id == device.id else " "
        typer.echo(f"{marker} {device.id:>4} {device.name} [{device.transport_kind.name.lower()}]")


def _assign_positionals(
    positionals: list[str],
    address: str | None,
    name: str | None,
) -> tuple[str | None, str | None]:
    """Fill whichever of address and name the flags left unset, in that order."""
    remaining = list(positionals)
    if address is None and remaining:
        address = remaining.pop(0)
    if name is None and remaining:
        name = remaining.pop(0)
    if remaining:
        LOGGER.warning("Ignoring extra arguments: %s", " ".join(remaining))
    return address, name


@app.command(
    epilog=EPILOG,
    context_settings={
        "help_option_names": ["-h", "--help"],
        "ignore_unknown_options": True,
    },
)
def main(
    positionals: list[str] | None = typer.Argument(
        None, metavar="[ADDRESS] [NAME]", help="Bluetooth MAC address and audio output display name"
    ),
    address: str | None = typer.Option(None, "--address", "-a", help="Bluetooth MAC address"),
    name: str | None = typer.Option(None, "--name", "-n", help="Audio output display name"),
    profile: str | None = typer.Option(None, "--profile", "-p", help="Configuration profile"),
    timeout: float | None = typer.Option(None, "--timeout", "-t", help="Connect timeout (seconds)"),
    poll_interval: float | None = typer.Option(None, "--poll-interval", help="Connection poll interval (seconds)"),
    config_path: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
    list_outputs: bool = typer.Option(False, "--list-outputs", "-l", help="List audio output devices and exit"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log warnings and errors"),
) -> None:
    """Connect to a Bluetooth audio device and make it the default output."""
    _configure_logging(verbose, quiet)

    try:
        if list_outputs:
            # Listing needs no profile, so a broken config file must not block it.
            _list_outputs(_build_service(AppConfig()))
            return

        config = load_config(config_path)
        service = _build_service(config)
        address, name = _assign_positionals(positionals or [], address, name)

        target = _resolve_target(
            config,
            profile=profile,
            address=address,
            name=name,
            timeout=timeout,
            poll_interval=poll_interval,
        )
        result = service.run(target)
        if result.state is RouteState.ALREADY_ROUTED:
            typer.echo(f"Default output already set to {target.display_name}. No switch needed.")
        else:
            typer.echo(f"Switched output to {target.display_name}")
    except ConnectblueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=exc.exit_code) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
