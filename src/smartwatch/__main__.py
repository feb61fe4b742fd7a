"""Entry point for ``python -m smartwatch``."""

import sys

from .cli import main

sys.exit(main())
