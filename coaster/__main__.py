import sys

from coaster.cli import main

sys.exit(main())
