"""Entry point for File Relay.

Usage:
    python -m file_relay [start] [--config PATH]   Poll and move files until stopped
    python -m file_relay help                      Show usage
"""

from file_relay.service import main

if __name__ == "__main__":
    main()
