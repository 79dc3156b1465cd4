import sys

from fracflow.driver import main

sys.exit(main())
