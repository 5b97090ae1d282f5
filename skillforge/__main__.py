import sys

from skillforge.main import main

sys.exit(main())
