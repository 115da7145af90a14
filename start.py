#!/usr/bin/env python3
"""
Start script - runs the ticker with command-line options
"""
import sys

from app.main import main

if __name__ == "__main__":
    sys.exit(main())
