import sys

from odekit.cli import main

sys.exit(main())
