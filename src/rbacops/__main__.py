"""Allow ``python -m rbacops``."""
import sys

from rbacops.presentation.cli import main

sys.exit(main())
