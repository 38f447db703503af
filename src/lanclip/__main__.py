import sys

from lanclip.main import main

sys.exit(main())
