"""
acrd - autocompletion and refactoring daemon for editor integrations.

A short-lived client invoked per editor keystroke talks to a long-lived
RPyC daemon over a per-user Unix socket, and renders the daemon's answers
in the syntax each editor plugin expects.
"""

__version__ = "0.3.0"
__author__ = "Seba Battig"
