import math
from collections import namedtuple

import numpy as np


# --- Field geometry ---
LANE_COUNT = 3
ROAD_PADDING = 40
PLAYER_WIDTH = 48
PLAYER_HEIGHT = 90
PLAYER_BOTTOM_GAP = 30

# --- Speed / difficulty ---
BASE_SPEED = 220
MIN_SPEED = 200
MAX_SPEED = 1200
SPEED_GROWTH = 0.02       # speed_factor gained per second
BRAKE_MULT = 0.6
SCORE_PER_DISTANCE = 0.02
MAX_DT = 0.05

# --- Spawning ---
INITIAL_SPAWN_INTERVAL = 1.0
SPAWN_TIGHTEN = 0.98
MIN_SPAWN_INTERVAL = 0.45
MAX_SPAWN_INTERVAL = 1.6
SPAWN_MARGIN = 20
CULL_MARGIN = 200

# --- Steering ---
STEER_SPEED = 10
STEER_COOLDOWN = 0.14
SWIPE_THRESHOLD = 30

LEFT = -1
RIGHT = 1


Rect = namedtuple("Rect", ["x", "y", "width", "height"])
Controls = namedtuple("Controls", ["left", "right", "brake"], defaults=(False, False, False))


class GameStatus:
    NOT_STARTED = "NOT_STARTED"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    CRASHED = "CRASHED"


def clamp(v, lo, hi):
    return max(lo, min(hi, v))


def rects_intersect(a, b):
    """Axis-aligned overlap test; touching edges count as overlapping."""
    return not (
        a.x > b.x + b.width
        or a.x + a.width < b.x
        or a.y > b.y + b.height
        or a.y + a.height < b.y
    )


# --- Difficulty model ---

def advance_speed_factor(speed_factor, dt):
    return speed_factor + dt * SPEED_GROWTH


def current_speed(speed_factor, braking):
    brake = BRAKE_MULT if braking else 1.0
    return clamp(BASE_SPEED * speed_factor * brake, MIN_SPEED, MAX_SPEED)


def tighten_spawn_interval(interval):
    return clamp(interval * SPAWN_TIGHTEN, MIN_SPAWN_INTERVAL, MAX_SPAWN_INTERVAL)


# --- Entities ---

class PlayerCar:
    def __init__(self, x, y, width=PLAYER_WIDTH, height=PLAYER_HEIGHT, lane=LANE_COUNT // 2):
        self.lane = lane
        self.x = x
        self.target_x = x
        self.y = y
        self.width = width
        self.height = height
        self.braking = False
        self.alive = True

    @property
    def rect(self):
        return Rect(self.x, self.y, self.width, self.height)


class Obstacle:
    def __init__(self, lane, x, y, width, height, speed_mult, color):
        self.lane = lane
        self.x = x
        self.y = y
        self.width = width
        self.height = height
        self.speed_mult = speed_mult
        self.color = color  # (hue, saturation, lightness)

    @property
    def rect(self):
        return Rect(self.x, self.y, self.width, self.height)


# --- Spawner ---

class Spawner:
    def __init__(self, rng, interval=INITIAL_SPAWN_INTERVAL):
        self.rng = rng
        self.interval = interval
        self.timer = 0.0

    def try_spawn(self, dt, lane_count, lane_x, player_width, player_height):
        self.timer += dt
        if self.timer < self.interval:
            return None

        self.timer = 0.0
        self.interval = tighten_spawn_interval(self.interval)

        lane = int(self.rng.integers(0, lane_count))
        width = self.rng.uniform(player_width * 0.8, player_width * 1.4)
        height = self.rng.uniform(player_height * 0.6, player_height * 1.6)
        speed_mult = self.rng.uniform(0.8, 1.4)
        color = (self.rng.uniform(0, 40), 80, self.rng.uniform(35, 55))

        return Obstacle(
            lane=lane,
            x=lane_x(lane, width),
            y=-height - SPAWN_MARGIN,  # fully above the visible field
            width=width,
            height=height,
            speed_mult=speed_mult,
            color=color,
        )


# --- Steering ---

def lane_to_x(lane, lane_width, car_width, padding=ROAD_PADDING):
    return padding + lane * lane_width + lane_width / 2 - car_width / 2


def approach(x, target, dt, steer_speed=STEER_SPEED):
    t = clamp(dt * steer_speed, 0, 1)
    if t >= 1:
        return target
    return x + (target - x) * t


def swipe_direction(dx, threshold=SWIPE_THRESHOLD):
    if dx < -threshold:
        return LEFT
    if dx > threshold:
        return RIGHT
    return 0


class SteeringController:
    """Discrete lane changes with per-direction debounce, plus smooth sliding."""

    def __init__(self, lane_count=LANE_COUNT, cooldown=STEER_COOLDOWN, steer_speed=STEER_SPEED):
        self.lane_count = lane_count
        self.cooldown = cooldown
        self.steer_speed = steer_speed
        self.left_cooldown = 0.0
        self.right_cooldown = 0.0

    def reset(self):
        self.left_cooldown = 0.0
        self.right_cooldown = 0.0

    def steer(self, player, direction, lane_x):
        player.lane = clamp(player.lane + direction, 0, self.lane_count - 1)
        player.target_x = lane_x(player.lane, player.width)

    def apply_input(self, player, controls, dt, lane_x):
        self.left_cooldown = max(0.0, self.left_cooldown - dt)
        self.right_cooldown = max(0.0, self.right_cooldown - dt)

        if controls.left and self.left_cooldown <= 0:
            self.steer(player, LEFT, lane_x)
            self.left_cooldown = self.cooldown
        if controls.right and self.right_cooldown <= 0:
            self.steer(player, RIGHT, lane_x)
            self.right_cooldown = self.cooldown

    def slide(self, player, dt):
        player.x = approach(player.x, player.target_x, dt, self.steer_speed)


# --- Simulation ---

class RaceSimulation:
    """
    The per-frame driving simulation. Owns the player, the obstacles and the
    run clock; renderers only ever see the dict returned by snapshot().
    """

    def __init__(self, field_width=400, field_height=640, rng=None, seed=None, high_score_store=None):
        if field_width <= ROAD_PADDING * 2 or field_height <= 0:
            raise ValueError(f"Field too small: {field_width}x{field_height}")

        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.high_score_store = high_score_store
        self.high_score = high_score_store.load() if high_score_store is not None else 0

        self.steering = SteeringController()
        self.status = GameStatus.NOT_STARTED
        self._layout(field_width, field_height)
        self._reset_run()

    # --- Layout ---

    def _layout(self, field_width, field_height):
        self.field_width = field_width
        self.field_height = field_height
        self.lane_width = (field_width - ROAD_PADDING * 2) / LANE_COUNT

    def lane_x(self, lane, width):
        return lane_to_x(lane, self.lane_width, width)

    def relayout(self, field_width, field_height):
        """Recompute lane geometry after a resize and snap the player onto its lane."""
        if field_width <= ROAD_PADDING * 2 or field_height <= 0:
            raise ValueError(f"Field too small: {field_width}x{field_height}")
        self._layout(field_width, field_height)
        p = self.player
        p.x = self.lane_x(p.lane, p.width)
        p.target_x = p.x
        p.y = field_height - p.height - PLAYER_BOTTOM_GAP

    def _reset_run(self):
        lane = LANE_COUNT // 2
        x = self.lane_x(lane, PLAYER_WIDTH)
        y = self.field_height - PLAYER_HEIGHT - PLAYER_BOTTOM_GAP
        self.player = PlayerCar(x, y, lane=lane)
        self.obstacles = []
        self.spawner = Spawner(self.rng)
        self.steering.reset()

        self.elapsed = 0.0
        self.distance = 0.0
        self.score = 0.0
        self.speed_factor = 1.0
        self.speed = current_speed(self.speed_factor, False)

    # --- Lifecycle ---

    def reset(self):
        """Back to the title state with a fresh run."""
        self._reset_run()
        self.status = GameStatus.NOT_STARTED

    def start(self):
        self._reset_run()
        self.status = GameStatus.RUNNING

    def restart(self):
        self.start()

    def pause(self):
        if self.status == GameStatus.RUNNING:
            self.status = GameStatus.PAUSED

    def resume(self):
        if self.status == GameStatus.PAUSED:
            self.status = GameStatus.RUNNING

    def toggle_pause(self):
        if self.status == GameStatus.RUNNING:
            self.pause()
        elif self.status == GameStatus.PAUSED:
            self.resume()

    @property
    def spawn_interval(self):
        return self.spawner.interval

    def steer(self, direction):
        """One discrete lane change, e.g. from a swipe. Ignored unless running."""
        if self.status != GameStatus.RUNNING:
            return
        self.steering.steer(self.player, direction, self.lane_x)

    # --- Step ---

    def step(self, dt, controls=None):
        if self.status != GameStatus.RUNNING:
            return self._get_info(crashed=False)
        if controls is None:
            controls = Controls()

        dt = clamp(dt, 0, MAX_DT)
        self.elapsed += dt

        # Difficulty
        self.speed_factor = advance_speed_factor(self.speed_factor, dt)
        self.speed = current_speed(self.speed_factor, self.player.braking)

        # Spawning
        obstacle = self.spawner.try_spawn(
            dt, LANE_COUNT, self.lane_x, self.player.width, self.player.height
        )
        if obstacle is not None:
            self.obstacles.append(obstacle)

        # Input
        self.steering.apply_input(self.player, controls, dt, self.lane_x)
        self.player.braking = bool(controls.brake)
        self.steering.slide(self.player, dt)

        # Obstacles & collision
        crashed = self._update_obstacles(dt)

        # Distance / score
        if self.player.alive:
            self.distance += self.speed * dt
            self.score += self.speed * dt * SCORE_PER_DISTANCE

        if crashed:
            self._record_high_score()

        return self._get_info(crashed=crashed)

    def _update_obstacles(self, dt):
        crashed = False
        player_rect = self.player.rect
        cull_line = self.field_height + CULL_MARGIN

        for ob in self.obstacles:
            ob.y += self.speed * ob.speed_mult * dt
            if self.player.alive and rects_intersect(player_rect, ob.rect):
                self.player.alive = False
                self.status = GameStatus.CRASHED
                crashed = True

        self.obstacles = [ob for ob in self.obstacles if ob.y <= cull_line]
        return crashed

    def _record_high_score(self):
        final = math.floor(self.score)
        if final > self.high_score:
            self.high_score = final
            if self.high_score_store is not None:
                self.high_score_store.save(final)

    # --- Views ---

    def _get_info(self, crashed):
        return {
            "score": math.floor(self.score),
            "distance": self.distance,
            "speed": self.speed,
            "crashed": crashed,
            "high_score": self.high_score,
            "status": self.status,
        }

    def snapshot(self):
        return {
            "speed": self.speed,
            "distance": self.distance,
            "player": self.player.rect,
            "alive": self.player.alive,
            "lane": self.player.lane,
            "braking": self.player.braking,
            "obstacles": [(ob.rect, ob.color) for ob in self.obstacles],
            "score": math.floor(self.score),
            "high_score": self.high_score,
            "status": self.status,
            "field": {
                "width": self.field_width,
                "height": self.field_height,
                "lane_width": self.lane_width,
                "padding": ROAD_PADDING,
                "lane_count": LANE_COUNT,
            },
        }
