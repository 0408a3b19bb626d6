"""User-facing surfaces: the relay's HTTP server and the terminal order form."""
