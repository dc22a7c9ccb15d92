import sys

from course_batch_toolkit.cli import main

sys.exit(main())
