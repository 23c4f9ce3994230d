"""Allow ``python -m signal_dashboard``."""

from .cli import main

main()
