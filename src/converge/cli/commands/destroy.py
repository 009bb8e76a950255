"""Destroy command - tear down every resource in a descriptor file."""

import sys
import click
from ...contracts.run_report import RunMode
from ...engine.runner import destroy as destroy_run
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

logger = get_logger("cli.destroy")


@click.command()
@click.argument('descriptor_file', type=click.Path(exists=False))
@provider_options
@output_options
@click.option('--dry-run', is_flag=True, help='Show what would be deleted without making changes')
@click.option('--yes', '-y', is_flag=True, help='Skip confirmation prompt')
@handles_errors("Destroy")
def destroy(descriptor_file, config_path, provider_name, state_file, project_id, zone, timeout,
            json_output, output, markdown, artifacts, verbose, quiet, dry_run, yes):
    """
    Delete every resource in DESCRIPTOR_FILE (resources and managed),
    dependents first. Resources already gone are reported unchanged.
    """
    config = load_cli_config(config_path)
    descriptor_set = load_descriptors(descriptor_file)
    adapter = build_provider(config, provider_name, state_file, project_id, zone)

    targets = list(descriptor_set.resources)
    declared = {d.id for d in targets}
    targets += [d for d in descriptor_set.managed if d.id not in declared]

    if not dry_run and not yes:
        click.echo(f"This will delete up to {len(targets)} resources:", err=True)
        for descriptor in targets:
            click.echo(f"  - {descriptor}", err=True)
        click.confirm("Are you sure you want to continue?", abort=True, err=True)

    mode = RunMode.PLAN if dry_run else RunMode.APPLY
    if not quiet and dry_run:
        click.echo("Running in DRY-RUN mode - no changes will be made", err=True)

    report = destroy_run(targets, adapter, mode=mode, options=build_run_options(config, timeout))
    emit_report(report, json_output, output, markdown, artifacts, verbose, quiet)
    sys.exit(exit_code_for(report))
