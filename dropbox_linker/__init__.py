"""
Dropbox Linker.
Turns files inside the local Dropbox folder into expiring shared links and
guards outgoing messages until every requested link has been created.
"""

__version__ = "0.1.0"
