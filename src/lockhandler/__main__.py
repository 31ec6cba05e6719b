import sys

from lockhandler.cli import main

sys.exit(main())
