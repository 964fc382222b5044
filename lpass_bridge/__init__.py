"""lpass-bridge — typed pipelines over the LastPass command-line client."""

__version__ = "0.1.0"
