"""
Runtime - clock synchronization, playback state engine and the per-viewer
session loop.
"""
