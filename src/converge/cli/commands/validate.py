"""Validate command - load a descriptor file and print its creation order."""

import json
import click
from ...graph.dependency_graph import Direction, order
from ...presentation.human_formatter import format_order
from ..utils import handles_errors, load_descriptors


@click.command()
@click.argument('descriptor_file', type=click.Path(exists=False))
@click.option('--destroy', 'destroy_order', is_flag=True, help='Print the teardown order instead')
@click.option('--json', 'json_output', is_flag=True, help='Output the order as a JSON list')
@handles_errors("Validate")
def validate(descriptor_file, destroy_order, json_output):
    """Check DESCRIPTOR_FILE for unknown dependencies and cycles."""
    descriptor_set = load_descriptors(descriptor_file)
    direction = Direction.DESTROY if destroy_order else Direction.CREATE
    ordered = [d.id for d in order(descriptor_set.resources, direction)]

    if json_output:
        click.echo(json.dumps(ordered, indent=2))
    else:
        click.echo(format_order(ordered))
        click.echo("")
        click.echo(f"Valid: {len(ordered)} resources, no cycles.")
