"""Allow `python -m kanmd`."""

from .cli.main import main

main()
