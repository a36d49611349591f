"""CLI entry points for SafeReport.

Provides command-line tools for:
- Submitting reports on behalf of a reporter
- Checking report status by case token
- Previewing mention extraction and anonymization offline
- Development setup: service checks, migrations and sample data
"""

import click

from .. import __version__
from .dev import cli as dev_cli
from .reports import report_group


@click.group()
@click.version_option(version=__version__, prog_name="safereport")
def main():
    """SafeReport - Confidential incident reporting.

    Command-line tools for intake staff and operators.
    """
    pass


main.add_command(report_group, name="report")
main.add_command(dev_cli, name="dev")


if __name__ == "__main__":
    main()
