import sys

from deepscroll.cli import main

sys.exit(main())
