"""Allow ``python -m videoproc``."""

import sys

from videoproc.presentation.cli import main

if __name__ == '__main__':
    sys.exit(main())
