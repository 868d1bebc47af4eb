"""
Shared types and enums for Simulive.

This module contains common enums used across the domain, runtime, API and
CLI layers.
"""

from __future__ import annotations

from enum import Enum


class PlaybackPolicy(str, Enum):
    """Access policy of an asset's playback handle."""

    PUBLIC = "public"
    SIGNED = "signed"


class PlaybackPhase(str, Enum):
    """Phases of a simulated-live broadcast as seen by one viewer."""

    PRE_ROLL = "pre_roll"
    LIVE = "live"
    ENDED = "ended"


class Overlay(str, Enum):
    """What a viewer sees on top of (or instead of) the player."""

    LOADING = "loading"
    COUNTDOWN = "countdown"
    NONE = "none"
    ENDED = "ended"
    TOKEN_ERROR = "token_error"
    UNAVAILABLE = "unavailable"
