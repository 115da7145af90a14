"""
Application Package

Contains the command-line runner that wires the preference store, the ticker
configuration and the controller together and logs the status line.
"""
