"""Entry point: ``python liquidador.py quote --unit 12 --broker 3``."""
import asyncio

from liquidaciones.config import settings
from liquidaciones.logs import setup_logging

setup_logging(settings.log_level, settings.log_file)

from liquidaciones.cli import run  # noqa: E402

if __name__ == "__main__":
    asyncio.run(run())
