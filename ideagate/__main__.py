"""Allow ``python -m ideagate``."""

from __future__ import annotations

import sys

from ideagate.cli import main

sys.exit(main())
