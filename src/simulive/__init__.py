"""
Simulive - simulated live broadcast of pre-recorded video.

Every viewer is kept at the same playback position at the same wall-clock
time, so an on-demand asset behaves like a live broadcast.
"""

__version__ = "0.1.0"
