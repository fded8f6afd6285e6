import sys

from .run_analysis import main

sys.exit(main())
