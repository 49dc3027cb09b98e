import sys

from nsca_client.main import main

sys.exit(main())
