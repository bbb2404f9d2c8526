"""homedock: install a rootless Docker engine into the user's home directory."""

__version__ = "0.3.0"
