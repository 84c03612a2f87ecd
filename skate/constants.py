"""
skate.constants — Shared Constants
====================================

Single source of truth for the game word, input limits and the turn
window.  Import from here instead of duplicating in services and routes.
"""

from __future__ import annotations

from datetime import timedelta

# ---------------------------------------------------------------------------
# The game
# ---------------------------------------------------------------------------
SKATE_WORD = "SKATE"

DIFFICULTY_MIN = 1
DIFFICULTY_MAX = 5

TRICK_MAX_LENGTH = 200

# How long the turn holder has to post an attempt
DEFAULT_TURN_WINDOW = timedelta(hours=24)
