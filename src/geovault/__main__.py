"""
GeoVault Package Main Entry Point

This module serves as the main entry point when the package is run as a module
using `python -m geovault`. It delegates to the CLI main function.
"""

import logging
import sys

from geovault.cli.common.error_handler import handle_cli_error
from geovault.cli.typer_app import app
from geovault.shared.constants import CLIDefaults

logger = logging.getLogger(__name__)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        logger.info("Command interrupted by user")
        sys.exit(CLIDefaults.EXIT_ERROR)
    except SystemExit:
        raise
    except Exception as e:  # noqa: BLE001
        exit_code = handle_cli_error(e, "geovault-main")
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
