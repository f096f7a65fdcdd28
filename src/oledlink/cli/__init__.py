"""
oledlink Command-Line Interface
===============================

This package provides the command-line tool for the panel driver:

- **oledctl**: discover bridges and ports, show images, fill and restart
  the panel

The tool is a Click-based CLI application with built-in help.
"""

__all__ = ["oledctl"]
