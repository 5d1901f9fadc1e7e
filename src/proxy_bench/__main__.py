"""Allow ``python -m proxy_bench``."""

import sys

from proxy_bench.runner import main

sys.exit(main())
