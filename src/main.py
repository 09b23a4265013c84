# Command line entry point: print the bracket implied by a predictions file

import sys
from playoffs.cli import main

if __name__ == '__main__':
    sys.exit(main())
