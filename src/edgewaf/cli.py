"""Command-line interface for edgewaf."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from edgewaf import __version__
from edgewaf.api.client import EdgeApiClient
from edgewaf.api.models import Rule, RuleAction
from edgewaf.config import (
    API_KEY_ENV,
    DEFAULT_CONFIG_FILE,
    EdgeWafConfig,
    generate_example_config,
    load_config,
)
from edgewaf.errors import MissingApiKeyError
from edgewaf.utils.http import HttpClient
from edgewaf.utils.logging import configure_logging, get_logger, log_to_file

app = typer.Typer(
    name="edgewaf",
    help="Provision an edge CDN WAF with its OWASP settings, response and logging endpoints, and manage its rules.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

rules_app = typer.Typer(
    name="rules",
    help="Rule status management, listings and backups.",
    no_args_is_help=True,
)
app.add_typer(rules_app, name="rules")

waf_app = typer.Typer(
    name="waf",
    help="WAF status and configuration sets.",
    no_args_is_help=True,
)
app.add_typer(waf_app, name="waf")

config_app = typer.Typer(
    name="config",
    help="Configuration management.",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")

console = Console()
logger = get_logger(__name__)

ConfigOption = Annotated[
    Path,
    typer.Option(
        "--config",
        "-c",
        help="Path to the TOML configuration file.",
        dir_okay=False,
    ),
]
ApiKeyOption = Annotated[
    str | None,
    typer.Option(
        "--api-key",
        envvar=API_KEY_ENV,
        help="Edge API key.",
        show_default=False,
    ),
]
ServiceArgument = Annotated[str, typer.Argument(help="Service ID.")]
WafArgument = Annotated[str, typer.Argument(help="WAF ID.")]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"edgewaf version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """edgewaf - provision and manage an edge CDN WAF."""
    configure_logging(verbose=verbose, quiet=quiet)


def _handle_cli_error(error: Exception) -> None:
    """Handle exceptions and display user-friendly error messages.

    Args:
        error: The exception to handle.

    Raises:
        typer.Exit: Always exits with code 1.
    """
    from edgewaf.errors import EdgeWafError

    if isinstance(error, EdgeWafError):
        console.print(f"[bold red]Error:[/bold red] {error.message}")
        if error.hint:
            console.print(f"[yellow]Hint:[/yellow] {error.hint}")
    else:
        console.print(f"[red]Error: {error}[/red]")
        logger.exception("Command failed")

    raise typer.Exit(code=1)


def _load(config_path: Path) -> EdgeWafConfig:
    """Load the configuration and attach the configured log file."""
    config = load_config(config_path)
    if config.log_path:
        log_to_file(config.log_path)
    return config


def _open_http(config: EdgeWafConfig, api_key: str | None) -> HttpClient:
    """Create the HTTP client for the configured endpoint."""
    key = api_key or config.api_key
    if not key:
        raise MissingApiKeyError()
    return HttpClient(config.api_endpoint, key)


def _split(value: str | None) -> list[str]:
    """Split a comma separated option value."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _draft_version(api: EdgeApiClient, service_id: str) -> int:
    """Clone the active version of a service into a new draft."""
    from edgewaf.waf.versions import clone_version, get_active_version

    active = get_active_version(api, service_id)
    return clone_version(api, service_id, active)


@app.command()
def provision(
    service_id: ServiceArgument,
    config_path: ConfigOption = Path(DEFAULT_CONFIG_FILE),
    api_key: ApiKeyOption = None,
    with_shielding: Annotated[
        bool,
        typer.Option("--with-shielding", help="Only log at the node that executed the WAF."),
    ] = False,
    with_perimeterx: Annotated[
        bool,
        typer.Option("--with-perimeterx", help="Only log requests carrying x-request-id."),
    ] = False,
    force_status: Annotated[
        bool,
        typer.Option("--force-status", help="Force tag status changes over conflicts."),
    ] = False,
) -> None:
    """Provision a WAF on a new draft version of a service."""
    from edgewaf.waf.logging_conditions import LoggingConditionComposer
    from edgewaf.waf.provisioner import Provisioner
    from edgewaf.waf.rules import RuleStatusReconciler
    from edgewaf.waf.versions import validate_version

    try:
        config = _load(config_path)
        with _open_http(config, api_key) as http:
            api = EdgeApiClient(http)
            version = _draft_version(api, service_id)

            waf_id = Provisioner(api, config, logger).provision(service_id, version)

            if with_shielding or with_perimeterx or config.weblog.expiry > 0:
                LoggingConditionComposer(api, config, logger).apply(
                    service_id, version, with_shielding, with_perimeterx
                )

            reconciler = RuleStatusReconciler(api, logger=logger)
            result = reconciler.reconcile(service_id, waf_id, config, force=force_status)
            reconciler.patch_rule_sets(service_id, waf_id)

            valid = validate_version(api, service_id, version, logger)
    except Exception as e:
        _handle_cli_error(e)
        return

    console.print(f"[green]WAF {waf_id} provisioned on version {version}[/green]")
    if result.failed:
        console.print(f"[yellow]{len(result.failed)} rule status changes failed[/yellow]")
    if not valid or result.failed:
        raise typer.Exit(code=1)


@app.command()
def deprovision(
    service_id: ServiceArgument,
    config_path: ConfigOption = Path(DEFAULT_CONFIG_FILE),
    api_key: ApiKeyOption = None,
) -> None:
    """Remove every WAF from a new draft version of a service."""
    from edgewaf.waf.deprovisioner import Deprovisioner
    from edgewaf.waf.versions import validate_version

    try:
        config = _load(config_path)
        with _open_http(config, api_key) as http:
            api = EdgeApiClient(http)
            version = _draft_version(api, service_id)
            result = Deprovisioner(api, config, logger).deprovision(service_id, version)
            valid = result.success and validate_version(api, service_id, version, logger)
    except Exception as e:
        _handle_cli_error(e)
        return

    for teardown in result.containers:
        state = "[green]removed[/green]" if teardown.success else "[red]failed[/red]"
        console.print(f"WAF {teardown.waf_id}: {state}")

    if not valid:
        console.print(f"[red]Deprovisioning of service {service_id} incomplete[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]Service {service_id} deprovisioned on version {version}[/green]")


@app.command()
def logs(
    service_id: ServiceArgument,
    config_path: ConfigOption = Path(DEFAULT_CONFIG_FILE),
    api_key: ApiKeyOption = None,
    delete: Annotated[
        bool,
        typer.Option("--delete", help="Remove the logging endpoints and conditions instead."),
    ] = False,
    with_shielding: Annotated[
        bool,
        typer.Option("--with-shielding", help="Only log at the node that executed the WAF."),
    ] = False,
    with_perimeterx: Annotated[
        bool,
        typer.Option("--with-perimeterx", help="Only log requests carrying x-request-id."),
    ] = False,
) -> None:
    """Create (or delete) the WAF logging endpoints and conditions on a new draft version."""
    from edgewaf.waf.deprovisioner import Deprovisioner
    from edgewaf.waf.logging_conditions import LoggingConditionComposer
    from edgewaf.waf.provisioner import Provisioner
    from edgewaf.waf.versions import validate_version

    try:
        config = _load(config_path)
        with _open_http(config, api_key) as http:
            api = EdgeApiClient(http)
            version = _draft_version(api, service_id)

            if delete:
                done = Deprovisioner(api, config, logger).delete_logging(service_id, version)
            else:
                Provisioner(api, config, logger).create_logging_endpoints(service_id, version)
                LoggingConditionComposer(api, config, logger).apply(
                    service_id, version, with_shielding, with_perimeterx
                )
                done = True

            valid = done and validate_version(api, service_id, version, logger)
    except Exception as e:
        _handle_cli_error(e)
        return

    if not valid:
        raise typer.Exit(code=1)
    action = "removed from" if delete else "configured on"
    console.print(f"[green]Logging {action} version {version}[/green]")


@rules_app.command("apply")
def rules_apply(
    service_id: ServiceArgument,
    waf_id: WafArgument,
    config_path: ConfigOption = Path(DEFAULT_CONFIG_FILE),
    api_key: ApiKeyOption = None,
    tags: Annotated[
        str | None,
        typer.Option("--tags", help="Comma separated tags (overrides the config file)."),
    ] = None,
    publishers: Annotated[
        str | None,
        typer.Option("--publishers", help="Comma separated publishers (overrides the config file)."),
    ] = None,
    rules: Annotated[
        str | None,
        typer.Option("--rules", help="Comma separated rule IDs (overrides the config file)."),
    ] = None,
    action: Annotated[
        RuleAction | None,
        typer.Option("--action", help="Status to apply (overrides the config file)."),
    ] = None,
    force_status: Annotated[
        bool,
        typer.Option("--force-status", help="Force tag status changes over conflicts."),
    ] = False,
) -> None:
    """Set rule statuses on an existing WAF."""
    from edgewaf.waf.rules import RuleStatusReconciler

    try:
        config = _load(config_path)
        overrides: dict[str, object] = {}
        if tags is not None:
            overrides["tags"] = _split(tags)
        if publishers is not None:
            overrides["publishers"] = _split(publishers)
        if rules is not None:
            overrides["rules"] = [int(r) for r in _split(rules)]
        if action is not None:
            overrides["action"] = action.value
        if overrides:
            config = config.model_copy(update=overrides)

        with _open_http(config, api_key) as http:
            reconciler = RuleStatusReconciler(EdgeApiClient(http), logger=logger)
            result = reconciler.reconcile(service_id, waf_id, config, force=force_status)
            reconciler.patch_rule_sets(service_id, waf_id)
    except Exception as e:
        _handle_cli_error(e)
        return

    console.print(
        f"Applied: {len(result.applied)}  Failed: {len(result.failed)}  "
        f"Skipped: {len(result.skipped)}"
    )
    if result.failed:
        console.print(f"[red]Failed: {', '.join(result.failed)}[/red]")
        raise typer.Exit(code=1)


def _rules_table(title: str, rules: list[Rule], details: dict[str, Rule | None]) -> Table:
    table = Table(title=title)
    table.add_column("Rule ID", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Paranoia", justify="right")
    table.add_column("Publisher", style="magenta")
    table.add_column("Message")

    for rule in rules:
        info = details.get(rule.modsec_rule_id)
        table.add_row(
            rule.modsec_rule_id or rule.id,
            rule.status,
            str(info.paranoia_level) if info else "-",
            info.publisher if info else "-",
            info.message if info else "",
        )
    return table


@rules_app.command("list")
def rules_list(
    service_id: ServiceArgument,
    waf_id: WafArgument,
    config_path: ConfigOption = Path(DEFAULT_CONFIG_FILE),
    api_key: ApiKeyOption = None,
    details: Annotated[
        bool,
        typer.Option("--details", help="Look up paranoia level, publisher and message of each rule."),
    ] = False,
) -> None:
    """List the rule statuses of a WAF."""
    from edgewaf.waf.catalog import RuleCatalog

    try:
        config = _load(config_path)
        with _open_http(config, api_key) as http:
            catalog = RuleCatalog(EdgeApiClient(http), logger=logger)
            groups = catalog.rule_statuses(service_id, waf_id)

            info: dict[str, Rule | None] = {}
            if details:
                for rule in groups.block + groups.log + groups.disabled:
                    info[rule.modsec_rule_id] = catalog.rule_info(rule.modsec_rule_id)
    except Exception as e:
        _handle_cli_error(e)
        return

    console.print(_rules_table("Blocking Rules", groups.block, info))
    console.print(_rules_table("Logging Rules", groups.log, info))
    console.print(_rules_table("Disabled Rules", groups.disabled, info))


@rules_app.command("catalog")
def rules_catalog(
    config_path: ConfigOption = Path(DEFAULT_CONFIG_FILE),
    api_key: ApiKeyOption = None,
    configuration_set: Annotated[
        str | None,
        typer.Option("--configuration-set", help="Only list rules of this configuration set."),
    ] = None,
) -> None:
    """List every rule of the platform catalog, grouped by publisher."""
    from edgewaf.waf.catalog import RuleCatalog

    try:
        config = _load(config_path)
        with _open_http(config, api_key) as http:
            grouped = RuleCatalog(EdgeApiClient(http), logger=logger).all_rules(configuration_set)
    except Exception as e:
        _handle_cli_error(e)
        return

    for publisher, rules in grouped.items():
        table = Table(title=f"{publisher} rules")
        table.add_column("Rule ID", style="cyan")
        table.add_column("Paranoia", justify="right")
        table.add_column("Version", style="dim")
        table.add_column("Message")
        for rule in rules:
            table.add_row(rule.id, str(rule.paranoia_level), rule.version, rule.message)
        console.print(table)


@rules_app.command("backup")
def rules_backup(
    service_id: ServiceArgument,
    waf_id: WafArgument,
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Backup file to write.", dir_okay=False),
    ],
    config_path: ConfigOption = Path(DEFAULT_CONFIG_FILE),
    api_key: ApiKeyOption = None,
) -> None:
    """Back up the rule statuses and OWASP settings of a WAF to a TOML file."""
    from edgewaf.waf.backup import BackupSerializer

    try:
        config = _load(config_path)
        with _open_http(config, api_key) as http:
            record = BackupSerializer(EdgeApiClient(http), logger=logger).backup(
                service_id, waf_id, output
            )
    except Exception as e:
        _handle_cli_error(e)
        return

    console.print(
        f"[green]Backup {record.id} written to {output}[/green] "
        f"(log: {len(record.log)}, block: {len(record.block)}, disabled: {len(record.disabled)})"
    )


@waf_app.command("status")
def waf_status(
    waf_id: WafArgument,
    status: Annotated[str, typer.Argument(help="Status transition, such as enable or disable.")],
    config_path: ConfigOption = Path(DEFAULT_CONFIG_FILE),
    api_key: ApiKeyOption = None,
) -> None:
    """Change the status of a WAF."""
    from edgewaf.waf.rules import RuleStatusReconciler

    try:
        config = _load(config_path)
        with _open_http(config, api_key) as http:
            changed = RuleStatusReconciler(EdgeApiClient(http), logger=logger).change_waf_status(
                waf_id, status
            )
    except Exception as e:
        _handle_cli_error(e)
        return

    if not changed:
        console.print(f"[red]Could not change the status of WAF {waf_id} to {status}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]WAF {waf_id} status changed to {status}[/green]")


@waf_app.command("configuration-sets")
def waf_configuration_sets(
    config_path: ConfigOption = Path(DEFAULT_CONFIG_FILE),
    api_key: ApiKeyOption = None,
) -> None:
    """List the available configuration sets."""
    from edgewaf.waf.catalog import RuleCatalog

    try:
        config = _load(config_path)
        with _open_http(config, api_key) as http:
            sets = RuleCatalog(EdgeApiClient(http), logger=logger).configuration_sets()
    except Exception as e:
        _handle_cli_error(e)
        return

    table = Table(title="Configuration Sets")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Active", style="yellow")
    for configuration_set in sets:
        table.add_row(configuration_set.id, configuration_set.name, str(configuration_set.active))
    console.print(table)


@waf_app.command("set-configuration-set")
def waf_set_configuration_set(
    waf_id: WafArgument,
    configuration_set_id: Annotated[str, typer.Argument(help="Configuration set ID.")],
    config_path: ConfigOption = Path(DEFAULT_CONFIG_FILE),
    api_key: ApiKeyOption = None,
) -> None:
    """Bind a WAF to a configuration set."""
    from edgewaf.waf.rules import RuleStatusReconciler

    try:
        config = _load(config_path)
        with _open_http(config, api_key) as http:
            RuleStatusReconciler(EdgeApiClient(http), logger=logger).set_configuration_set(
                waf_id, configuration_set_id
            )
    except Exception as e:
        _handle_cli_error(e)
        return

    console.print(f"[green]WAF {waf_id} bound to configuration set {configuration_set_id}[/green]")


@config_app.command("init")
def config_init(
    path: Annotated[
        Path,
        typer.Argument(
            help="Directory to create configuration file in.",
        ),
    ] = Path(),
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite existing configuration file.",
        ),
    ] = False,
) -> None:
    """Initialize a new configuration file."""
    config_path = path / DEFAULT_CONFIG_FILE

    if config_path.exists() and not force:
        console.print(f"[yellow]Configuration file already exists: {config_path}[/yellow]")
        console.print("Use --force to overwrite.")
        raise typer.Exit(code=1)

    config_path.write_text(generate_example_config())
    console.print(f"[green]Created configuration file: {config_path}[/green]")
    console.print(f"Set the API key with the {API_KEY_ENV} environment variable.")


if __name__ == "__main__":
    app()
