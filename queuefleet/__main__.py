import sys

from queuefleet.main import main

if __name__ == "__main__":
    sys.exit(main())
