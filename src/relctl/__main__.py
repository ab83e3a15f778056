"""Allow running relctl with ``python -m relctl``."""

import sys

from relctl.cli import main

sys.exit(main())
