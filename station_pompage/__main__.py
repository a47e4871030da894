import sys

from station_pompage.main import main

sys.exit(main())
