"""Version command - show Converge, report format and provider versions."""

import json
import platform
import click
from ... import __version__
from ...contracts.run_report import REPORT_VERSION
from ...providers import PROVIDERS


@click.command()
@click.option('--json', 'json_output', is_flag=True, help='Output version details as JSON')
def version(json_output):
    """Show Converge version and the run report format it writes."""
    details = {
        "converge": __version__,
        "report_format": REPORT_VERSION,
        "providers": sorted(PROVIDERS),
        "python": platform.python_version(),
    }
    if json_output:
        click.echo(json.dumps(details, indent=2))
        return
    click.echo(f"converge version {__version__}")
    click.echo(f"report format {REPORT_VERSION}, providers: {', '.join(details['providers'])}")
