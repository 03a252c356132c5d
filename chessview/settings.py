import os


def _get_int(name, default):
    try:
        return int(os.getenv(name, default))
    except ValueError:
        return default


DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# Timed advance for autoplay, in milliseconds
AUTOPLAY_SPEED_MS = _get_int("CHESSVIEW_AUTOPLAY_SPEED", 1000)

# white, black, or auto (auto = flip positions where black is to move)
DEFAULT_ORIENTATION = os.getenv("CHESSVIEW_DEFAULT_ORIENTATION", "auto").lower()
if DEFAULT_ORIENTATION not in ("white", "black", "auto"):
    DEFAULT_ORIENTATION = "auto"

# figurine or letter
NOTATION_TYPE = os.getenv("CHESSVIEW_NOTATION", "figurine").lower()

ARROW_COLOR = "green"
CIRCLE_COLOR = "green"
HIGHLIGHT_COLOR = "yellow"

PUZZLE_SHOW_HINTS = os.getenv("CHESSVIEW_PUZZLE_HINTS", "true").lower() == "true"
PUZZLE_OPPONENT_FIRST_MOVE_DELAY_MS = _get_int("CHESSVIEW_PUZZLE_FIRST_DELAY", 600)
PUZZLE_OPPONENT_RESPONSE_DELAY_MS = _get_int("CHESSVIEW_PUZZLE_RESPONSE_DELAY", 400)
HINT_HIGHLIGHT_DURATION_MS = 2000
