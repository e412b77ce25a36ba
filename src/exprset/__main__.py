import sys

from exprset.cli import main

sys.exit(main())
