"""Viewport update layer.

Turns raw map-widget signals into a single, serialized stream of reveal
updates.  The controller is the only component allowed to schedule them.
"""
