import sys

from queue_import.cli import main

sys.exit(main())
