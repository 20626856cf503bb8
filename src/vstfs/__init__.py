"""TFVC integration: run TF.exe, parse its output, present the records."""

__version__ = "0.1.0"
