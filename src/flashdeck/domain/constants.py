"""Centralized constants for flashdeck.

Scheduling numbers and defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Time ----------
MS_PER_DAY = 86_400_000

# ---------- SM-2 ----------
DEFAULT_INTERVAL = 1
DEFAULT_REPETITION = 0
DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
SECOND_INTERVAL = 6
PASSING_QUALITY = 3  # grades below this are failed recalls

# ---------- Grading ----------
MIN_QUALITY = 1
MAX_QUALITY = 5
CORRECT_QUALITY = 4  # grades at or above this count toward accuracy

# ---------- Import / Export ----------
EXPORT_VERSION = 1
CSV_HEADER = ["front", "back", "interval", "repetition", "easeFactor", "due"]
