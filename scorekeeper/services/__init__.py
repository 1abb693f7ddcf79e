"""Session services: store backends, the game engine and the controller.

This package holds the scorekeeping logic imported by HTTP routes and socket
handlers, keeping transport concerns separated from game mechanics.
"""
