import sys

from . import execute_command

if __name__ == "__main__":
    execute_command(*sys.argv)
