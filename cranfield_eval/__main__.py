"""Allow running as: python -m cranfield_eval"""
import sys

from cranfield_eval.cli import main

sys.exit(main())
