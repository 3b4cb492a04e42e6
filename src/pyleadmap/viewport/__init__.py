"""Viewport orchestration.

Everything that turns a stream of map idle/zoom readings into at most
one backend fetch per settled viewport, and into the marker set the
map should show.
"""
