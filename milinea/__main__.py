"""Entry point for ``python -m milinea``."""

import sys

from .cli import main

sys.exit(main())
