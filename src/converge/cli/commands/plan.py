"""Plan command - show what apply would change, issuing describe calls only."""

import sys
import click
from ...engine.runner import plan as plan_run
from ...utils.logging import get_logger
from ..utils import (
    build_provider,
    build_run_options,
    emit_report,
    exit_code_for,
    handles_errors,
    load_cli_config,
    load_descriptors,
    output_options,
    provider_options,
)

logger = get_logger("cli.plan")


@click.command()
@click.argument('descriptor_file', type=click.Path(exists=False))
@provider_options
@output_options
@handles_errors("Plan")
def plan(descriptor_file, config_path, provider_name, state_file, project_id, zone, timeout,
         json_output, output, markdown, artifacts, verbose, quiet):
    """
    Plan reconciliation of DESCRIPTOR_FILE against observed state.

    No create or delete call is made. Exit code is 1 if any resource could
    not be described.
    """
    config = load_cli_config(config_path)
    descriptor_set = load_descriptors(descriptor_file)
    adapter = build_provider(config, provider_name, state_file, project_id, zone)

    if not quiet:
        click.echo(f"Planning {len(descriptor_set.resources)} resources with the {adapter.name} provider...", err=True)

    report = plan_run(
        descriptor_set.resources,
        adapter,
        managed=descriptor_set.managed,
        options=build_run_options(config, timeout),
    )
    emit_report(report, json_output, output, markdown, artifacts, verbose, quiet)
    sys.exit(exit_code_for(report))
