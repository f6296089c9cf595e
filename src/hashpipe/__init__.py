"""hashpipe: pipe lines between stdin/stdout and an IRC connection."""

__version__ = "0.1.0"
