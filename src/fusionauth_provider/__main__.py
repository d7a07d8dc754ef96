import sys

from fusionauth_provider.cli.main import main

sys.exit(main())
