"""
spnode CLI - Command Line Interface for node configuration defaults

Main entry point for all CLI commands.
"""

import json
import logging

import click

from spnode.utils.logger import setup_logging, get_logger

logger = get_logger("cli")

ROLE_CHOICES = ["full", "miner", "raft"]


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--log-dir", default=None, help="Also write logs to this directory")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, log_dir):
    """Default configuration for storage network node roles"""
    level = logging.DEBUG if debug else logging.WARNING
    setup_logging(level=level, log_dir=log_dir)

    ctx.ensure_object(dict)


# =============================================================================
# Defaults Command
# =============================================================================


@cli.command("defaults")
@click.option("--role", type=click.Choice(ROLE_CHOICES), default="miner", help="Node role")
@click.option("--network-version", default=None, type=int, help="Protocol version for miner defaults")
def defaults(role, network_version):
    """Print the default config tree for a role as JSON"""
    from spnode.core import build_defaults, to_config_dict, DEFAULT_CC_LIFETIME_NETWORK_VERSION

    nv = DEFAULT_CC_LIFETIME_NETWORK_VERSION if network_version is None else network_version
    try:
        cfg = build_defaults(role, nv)
    except ValueError as e:
        raise click.ClickException(str(e))

    click.echo(json.dumps(to_config_dict(cfg), indent=2, ensure_ascii=False))


# =============================================================================
# Check Command
# =============================================================================


@cli.command("check")
@click.argument("overrides", type=click.Path(exists=True, dir_okay=False))
@click.option("--role", type=click.Choice(ROLE_CHOICES), default="miner", help="Node role")
@click.option("--network-version", default=None, type=int, help="Protocol version for miner checks")
@click.pass_context
def check(ctx, overrides, role, network_version):
    """Overlay an override file on the role defaults and validate it"""
    from spnode.core import load_config, ConfigError, DEFAULT_CC_LIFETIME_NETWORK_VERSION

    nv = DEFAULT_CC_LIFETIME_NETWORK_VERSION if network_version is None else network_version
    logger.debug(f"Checking {overrides} against {role} defaults")
    try:
        load_config(role, overrides, nv)
    except ConfigError as e:
        click.echo(f"❌ {overrides}: invalid {role} configuration")
        for problem in e.problems or [str(e)]:
            click.echo(f"   - {problem}")
        ctx.exit(1)

    click.echo(f"✓ {overrides}: valid {role} configuration")


# =============================================================================
# Fee Command
# =============================================================================


@cli.command("fee")
@click.option("--sectors", required=True, type=click.IntRange(min=0), help="Sectors in the batch")
@click.option("--kind", type=click.Choice(["precommit", "commit"]), default="commit", help="Batch message kind")
@click.option("--overrides", default=None, type=click.Path(exists=True, dir_okay=False), help="Miner override file")
def fee(sectors, kind, overrides):
    """Show the gas fee cap for a batch of sectors"""
    from spnode.core import load_config, ConfigError

    try:
        cfg = load_config("miner", overrides)
    except ConfigError as e:
        raise click.ClickException(str(e))

    if kind == "precommit":
        batch = cfg.fees.max_pre_commit_batch_gas_fee
    else:
        batch = cfg.fees.max_commit_batch_gas_fee

    total = batch.fee_for_sectors(sectors)
    click.echo(json.dumps({
        "kind": kind,
        "sectors": sectors,
        "base": str(batch.base),
        "per_sector": str(batch.per_sector),
        "fee": str(total),
        "fee_atto": total.atto,
    }, indent=2))


# =============================================================================
# Traversal Command
# =============================================================================


@cli.command("traversal")
@click.option("--env-file", default=None, type=click.Path(dir_okay=False), help=".env file to read")
def traversal(env_file):
    """Show the DAG traversal link budget for this environment"""
    from spnode.core import load_traversal_budget, DEFAULT_MAX_TRAVERSAL_LINKS

    budget = load_traversal_budget(env_file=env_file)
    click.echo(json.dumps({
        "max_links": budget.max_links,
        "default": budget.max_links == DEFAULT_MAX_TRAVERSAL_LINKS,
    }, indent=2))


if __name__ == "__main__":
    cli()
