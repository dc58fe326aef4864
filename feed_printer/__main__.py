import sys

from feed_printer.cli import main

sys.exit(main())
