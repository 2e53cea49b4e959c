#!/usr/bin/env python3
"""Main entry point for stackdeploy."""
import sys
from stackdeploy.cli import main

if __name__ == "__main__":
    sys.exit(main())
