"""
__main__.py -- entry point when running `python -m pyeviotree`.
It delegates to our CLI's main() function.
"""

from pyeviotree.cli import main

if __name__ == "__main__":
    main()
