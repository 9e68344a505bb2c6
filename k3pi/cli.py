import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from k3pi.commands import install
from k3pi.config import get_config, set_config
from k3pi.logging import setup_logging

app = typer.Typer(help="Install k3OS on a fleet of nodes over SSH.")

app.command("install")(install.install_cmd)


# Global options callback
@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to a k3pi config file"),
):
    """k3pi - k3OS installer."""
    set_config(None)
    settings = get_config(config)
    level_debug = debug or settings.logging.level.upper() == "DEBUG"
    setup_logging(
        level_debug,
        log_file=settings.logging.file,
        max_size_mb=settings.logging.max_size_mb,
        backup_count=settings.logging.backup_count,
    )
    if debug:
        logging.debug("Debug mode enabled")


if __name__ == "__main__":
    try:
        app()
    except Exception as e:
        logging.error(f"Error: {e}")
        sys.exit(1)
