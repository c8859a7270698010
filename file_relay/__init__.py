"""File Relay: polls a source folder and moves matching files to a destination.

A timer thread lists the source folder, hands every newly observed file
through a synchronous channel, and the file mover writes it into the
destination folder, replacing any file of the same name.
"""

__version__ = "1.0.0"
__app_name__ = "File Relay"
