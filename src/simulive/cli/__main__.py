"""``python -m simulive.cli``"""

from .main import cli

cli()
