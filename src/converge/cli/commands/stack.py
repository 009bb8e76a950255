"""Stack commands - render descriptor files for the code-server stack."""

import click
from ...config import load_engine_config
from ...config.stack import load_stack_config, load_stack_env_file
from ...descriptors.loader import dump_descriptors
from ...stack.catalog import build_stack, managed_stack
from ..utils import handles_errors


@click.group()
def stack():
    """Code-server workstation stack commands."""
    pass


@stack.command()
@click.argument('stack_config', type=click.Path(exists=True), required=False)
@click.option('--env', 'env_file', type=click.Path(exists=True), help='Read deploy-script variables from an .env file')
@click.option('--https/--no-https', default=None, help='Override enable_https')
@click.option('--config', 'config_path', type=click.Path(), help='Extra config YAML layered over user/project config')
@click.option('--output', '-o', type=click.Path(), help='Save descriptor YAML to file')
@handles_errors("Stack render")
def render(stack_config, env_file, https, config_path, output):
    """
    Render the descriptor file for a stack.

    Settings come from STACK_CONFIG (YAML) or --env; the merged config's
    ``stack`` section supplies defaults. The full HTTPS chain is always listed
    under ``managed`` so turning HTTPS off tears the load balancer down.
    """
    defaults = dict(load_engine_config(config_path).get("stack", {}))
    overrides = {} if https is None else {"enable_https": https}

    if env_file:
        config = load_stack_env_file(env_file, defaults, overrides)
    elif stack_config:
        config = load_stack_config(stack_config, defaults, overrides)
    else:
        raise click.UsageError("Provide STACK_CONFIG or --env")

    text = dump_descriptors(build_stack(config), managed_stack(config))

    if output:
        with open(output, 'w', encoding='utf-8') as f:
            f.write(text)
        click.echo(f"Descriptors saved to: {output}", err=True)
    else:
        click.echo(text)
