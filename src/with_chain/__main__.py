"""
Entry point for module execution (``python -m with_chain``).

Delegates to the CLI in ``with_chain.cli.__main__``.
"""

import sys
from with_chain.cli.__main__ import main

if __name__ == "__main__":
  sys.exit(main())
