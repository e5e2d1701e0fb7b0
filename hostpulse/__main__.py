"""Allow ``python -m hostpulse``."""

import sys

from hostpulse.cli import main

if __name__ == "__main__":
    sys.exit(main())
