from street_racer.core import (
    Controls,
    GameStatus,
    Obstacle,
    PlayerCar,
    RaceSimulation,
    Rect,
    SteeringController,
    Spawner,
    rects_intersect,
)
from street_racer.highscore import HighScoreStore

__version__ = "0.1.0"
