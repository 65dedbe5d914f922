import sys

from evtx_timeline.main import main

sys.exit(main())
