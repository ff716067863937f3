import sys

from linear_release.cli import main

sys.exit(main())
