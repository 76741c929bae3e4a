import sys

from addrlib_gen.runner import main

sys.exit(main())
