"""Allow ``python -m testorch``."""

import sys

from testorch.cli import main

sys.exit(main())
