import sys

from heapgraph.commands import main

if __name__ == "__main__":
    sys.exit(main())
