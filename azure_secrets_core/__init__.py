"""Issues, rotates and revokes ephemeral Azure service principal credentials."""

__version__ = "0.1.0"
