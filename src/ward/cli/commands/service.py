"""Service management commands."""

from collections.abc import Callable
from typing import Annotated, Any

import typer

from ward.cli.console import console, create_table, dim, error, success, warning
from ward.config import WardConfig, load_config
from ward.logging import configure_logging
from ward.service import Service, ServiceState, WardError, list_command
from ward.service.listing import is_service_unit
from ward.service.unitfile import UNIT_SUFFIX, serialize, unit_name_for

STATE_COLORS = {
    ServiceState.RUNNING: "green",
    ServiceState.STOPPED: "yellow",
    ServiceState.NOT_INSTALLED: "dim",
}


def _load(ctx: typer.Context) -> WardConfig:
    """Load config and set up logging for a command."""
    options = ctx.obj or {}
    try:
        config = load_config(options.get("config_path"))
    except (FileNotFoundError, WardError) as e:
        error(str(e))
        raise typer.Exit(1) from None

    configure_logging(
        level=options.get("log_level") or config.logging.level,
        use_rich=config.logging.use_rich,
    )
    return config


def _run(action: Callable[[], Any]) -> Any:
    """Run an action, turning Ward errors into a red message and exit 1."""
    try:
        return action()
    except WardError as e:
        error(str(e))
        raise typer.Exit(1) from None


def _service(ctx: typer.Context, name: str) -> Service:
    config = _load(ctx)
    return _run(lambda: config.create_service(name))


def register(app: typer.Typer) -> None:
    """Register service commands."""

    @app.command("list")
    def service_list(
        ctx: typer.Context,
        command: Annotated[
            bool,
            typer.Option(
                "--command",
                help="Print the shell command that lists services instead",
            ),
        ] = False,
    ) -> None:
        """List declared and installed services."""
        config = _load(ctx)

        if command:
            typer.echo(list_command(config.backend.systemctl, config.backend.user))
            return

        connect = config.backend.connection_factory()

        def fetch() -> dict[str, Any]:
            with connect() as conn:
                return {unit.name: unit for unit in conn.list_units()}

        units = _run(fetch)
        live = {
            unit.name.removesuffix(UNIT_SUFFIX)
            for unit in units.values()
            if is_service_unit(unit)
        }
        declared = set(config.list_services())

        table = create_table(
            "Services",
            [
                ("Name", "cyan"),
                ("Installed", ""),
                ("Active", ""),
            ],
        )
        for name in sorted(declared):
            unit = units.get(unit_name_for(name))
            table.add_row(
                name,
                "yes" if name in live else "no",
                unit.active_state if unit else "-",
            )
        console.print(table)
        dim(f"{len(live)} service units known to {config.backend.name}")

    @app.command("status")
    def service_status(
        ctx: typer.Context,
        name: Annotated[str, typer.Argument(help="Service name")],
    ) -> None:
        """Show the state of a declared service."""
        service = _service(ctx, name)
        state = _run(service.state)
        up_to_date = state != ServiceState.NOT_INSTALLED and _run(service.exists)

        table = create_table(
            f"Service {name}",
            [
                ("Property", "cyan"),
                ("Value", ""),
            ],
        )
        color = STATE_COLORS.get(state, "white")
        table.add_row("State", f"[{color}]{state.value}[/{color}]")
        table.add_row("Unit", service.unit_name)
        table.add_row("Directory", str(service.dirname))
        table.add_row("Up to date", "yes" if up_to_date else "no")
        if service.conf.desc:
            table.add_row("Description", service.conf.desc)
        table.add_row("ExecStart", service.conf.exec_start)
        console.print(table)

        if state != ServiceState.NOT_INSTALLED and not up_to_date:
            warning(f"Installed unit differs from config; run 'ward install {name}'")

    @app.command("install")
    def service_install(
        ctx: typer.Context,
        name: Annotated[str, typer.Argument(help="Service name")],
    ) -> None:
        """Install (or update) a declared service without starting it."""
        service = _service(ctx, name)
        _run(service.install)
        success(f"Service {name} installed")

    @app.command("start")
    def service_start(
        ctx: typer.Context,
        name: Annotated[str, typer.Argument(help="Service name")],
        timeout: Annotated[
            float | None,
            typer.Option("--timeout", "-t", help="Seconds to wait for the job"),
        ] = None,
    ) -> None:
        """Start an installed service."""
        service = _service(ctx, name)
        _run(lambda: service.start(timeout=timeout))
        success(f"Service {name} started")

    @app.command("stop")
    def service_stop(
        ctx: typer.Context,
        name: Annotated[str, typer.Argument(help="Service name")],
        timeout: Annotated[
            float | None,
            typer.Option("--timeout", "-t", help="Seconds to wait for the job"),
        ] = None,
    ) -> None:
        """Stop a running service."""
        service = _service(ctx, name)
        _run(lambda: service.stop(timeout=timeout))
        success(f"Service {name} stopped")

    @app.command("remove")
    def service_remove(
        ctx: typer.Context,
        name: Annotated[str, typer.Argument(help="Service name")],
    ) -> None:
        """Stop a service and remove its unit and files."""
        service = _service(ctx, name)
        _run(service.stop_and_remove)
        success(f"Service {name} removed")

    @app.command("show")
    def service_show(
        ctx: typer.Context,
        name: Annotated[str, typer.Argument(help="Service name")],
    ) -> None:
        """Print the unit file a declared service installs."""
        service = _service(ctx, name)
        data = _run(lambda: serialize(service.unit_name, service.conf))
        typer.echo(data.decode(), nl=False)

    @app.command("commands")
    def service_commands(
        ctx: typer.Context,
        name: Annotated[str, typer.Argument(help="Service name")],
    ) -> None:
        """Print shell commands that install and start a service remotely."""
        config = _load(ctx)
        service = _run(lambda: config.create_service(name))
        systemctl = config.backend.systemctl
        if config.backend.user:
            systemctl += " --user"
        for cmd in service.install_commands(systemctl):
            typer.echo(cmd.rstrip("\n"))
