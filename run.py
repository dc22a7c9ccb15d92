# -*- coding: utf-8 -*-

"""
Main entry point for launching the Course Batch Toolkit from a checkout.
"""

import sys

from course_batch_toolkit.cli import main

if __name__ == '__main__':
    sys.exit(main())
