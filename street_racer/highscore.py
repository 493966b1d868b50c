import json
import os
import sys


HIGH_SCORE_KEY = "streetRacerHigh"
HIGH_SCORE_FILENAME = "highscore.json"


def default_high_score_path():
    home = os.environ.get("STREET_RACER_HOME", os.path.expanduser("~/.street-racer"))
    return os.path.join(home, HIGH_SCORE_FILENAME)


class HighScoreStore:
    """Keyed high-score file. Missing or unreadable data reads as 0."""

    def __init__(self, path=None, key=HIGH_SCORE_KEY):
        self.path = path or default_high_score_path()
        self.key = key

    def _read_all(self):
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            return {}
        return data if isinstance(data, dict) else {}

    def load(self):
        value = self._read_all().get(self.key, 0)
        try:
            return max(0, int(value))
        except (TypeError, ValueError, OverflowError):
            return 0

    def save(self, score):
        data = self._read_all()
        data[self.key] = int(score)
        try:
            os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f)
        except OSError as e:
            print(f"Warning: could not save high score to {self.path}: {e}", file=sys.stderr)
