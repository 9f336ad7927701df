import sys

from harvest_ledger.cli import main

sys.exit(main())
