import gymnasium as gym
from gymnasium.spaces import MultiDiscrete
import numpy as np
import pygame
import os

from street_racer.core import (
    Controls,
    GameStatus,
    RaceSimulation,
    swipe_direction,
)
from street_racer.highscore import HighScoreStore

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")


class StreetRacerEnv(gym.Env):
    metadata = {"render_modes": ["rgb_array", "human"], "render_fps": 60}

    # Must be a short, user-facing control string:
    user_guide = (
        "Controls: ←/→ or A/D to change lanes, hold Space to brake. "
        "P pauses, Enter starts, R restarts."
    )

    # Must be a short, user-facing description of the game:
    game_description = (
        "An endless top-down street racer. Weave between three lanes of traffic that "
        "keeps getting faster and denser, and beat your high score."
    )

    # Should frames auto-advance or wait for user input?
    auto_advance = True

    # --- Constants ---
    SCREEN_WIDTH = 400
    SCREEN_HEIGHT = 640
    FPS = 60
    MAX_STEPS = 10000
    CRASH_MESSAGE_DELAY_MS = 250

    # Colors
    COLOR_BG = (11, 26, 18)
    COLOR_ROAD = (42, 42, 42)
    COLOR_GRASS = (10, 43, 24)
    COLOR_MARKING = (176, 176, 176)
    COLOR_OBSTACLE_SHADOW = (0, 0, 0, 64)
    COLOR_PLAYER_SHADOW = (0, 0, 0, 89)
    COLOR_PLAYER_TOP = (255, 107, 107)
    COLOR_PLAYER_BOTTOM = (179, 61, 61)
    COLOR_WINDSHIELD = (240, 150, 150)
    COLOR_HEADLIGHT = (255, 255, 200)
    COLOR_TEXT = (235, 235, 235)
    COLOR_CRASH = (255, 90, 90)

    # Lane markings
    MARKER_LENGTH = 40
    MARKER_SPACING = 30

    def __init__(self, render_mode="rgb_array", high_score_path=None):
        super().__init__()

        self.render_mode = render_mode
        self.observation_space = gym.spaces.Box(
            low=0, high=255, shape=(self.SCREEN_HEIGHT, self.SCREEN_WIDTH, 3), dtype=np.uint8
        )
        self.action_space = MultiDiscrete([5, 2, 2])

        pygame.init()
        pygame.font.init()
        self.screen = pygame.Surface((self.SCREEN_WIDTH, self.SCREEN_HEIGHT))
        self.clock = pygame.time.Clock()
        self.font_small = pygame.font.SysFont("monospace", 18, bold=True)
        self.font_large = pygame.font.SysFont("monospace", 30, bold=True)

        self.human_screen = None
        if render_mode == "human":
            pygame.display.set_caption("Street Racer")
            self.human_screen = pygame.display.set_mode(
                (self.SCREEN_WIDTH, self.SCREEN_HEIGHT), pygame.RESIZABLE
            )

        self.sim = RaceSimulation(
            self.SCREEN_WIDTH,
            self.SCREEN_HEIGHT,
            high_score_store=HighScoreStore(high_score_path),
        )
        self.steps = 0
        self.crash_ticks = None
        self.dt = 1.0 / self.FPS  # manual play overwrites this with the measured frame time

    def reset(self, seed=None, options=None):
        super().reset(seed=seed)

        self.steps = 0
        self.crash_ticks = None
        self.sim.rng = self.np_random
        if options and not options.get("autostart", True):
            # Stay on the title overlay until start() is called
            self.sim.reset()
        else:
            self.sim.start()

        return self._get_observation(), self._get_info()

    def step(self, action):
        if self.sim.status != GameStatus.RUNNING:
            terminated = self.sim.status == GameStatus.CRASHED
            return self._get_observation(), 0.0, terminated, False, self._get_info()

        # --- Action Handling ---
        movement, space_held = action[0], action[1] == 1
        controls = Controls(left=movement == 3, right=movement == 4, brake=space_held)

        # --- Simulation ---
        info = self.sim.step(self.dt, controls)
        self.steps += 1

        reward = 0.1  # Survival reward
        if info["crashed"]:
            reward = -10.0
            self.crash_ticks = pygame.time.get_ticks()

        terminated = self.sim.status == GameStatus.CRASHED
        truncated = self.steps >= self.MAX_STEPS

        return self._get_observation(), reward, terminated, truncated, self._get_info()

    # --- Lifecycle passthroughs used by the manual-play loop ---

    def start(self):
        self.steps = 0
        self.crash_ticks = None
        self.sim.start()

    def toggle_pause(self):
        self.sim.toggle_pause()

    def swipe(self, dx):
        direction = swipe_direction(dx)
        if direction:
            self.sim.steer(direction)

    def resize(self, width, height):
        self.SCREEN_WIDTH, self.SCREEN_HEIGHT = width, height
        self.screen = pygame.Surface((width, height))
        self.observation_space = gym.spaces.Box(
            low=0, high=255, shape=(height, width, 3), dtype=np.uint8
        )
        self.sim.relayout(width, height)

    # --- Rendering ---

    def _get_observation(self):
        self.screen.fill(self.COLOR_BG)
        view = self.sim.snapshot()
        self._render_game(view)
        self._render_ui(view)

        arr = pygame.surfarray.array3d(self.screen)
        return np.transpose(arr, (1, 0, 2)).astype(np.uint8)

    def _render_game(self, view):
        field = view["field"]
        cw, ch = field["width"], field["height"]
        road_left = field["padding"]
        road_right = cw - field["padding"]

        # Road and grass verges
        pygame.draw.rect(self.screen, self.COLOR_ROAD, (road_left, 0, road_right - road_left, ch), border_radius=18)
        pygame.draw.rect(self.screen, self.COLOR_GRASS, (0, 0, road_left, ch))
        pygame.draw.rect(self.screen, self.COLOR_GRASS, (road_right, 0, cw - road_right, ch))

        # Dashed lane markings scroll with distance travelled
        period = self.MARKER_LENGTH + self.MARKER_SPACING
        offset = (view["distance"] / 10) % period
        for i in range(1, field["lane_count"]):
            x = int(road_left + i * field["lane_width"])
            y = -period
            while y < ch + self.MARKER_LENGTH:
                top = int(y + offset)
                pygame.draw.line(self.screen, self.COLOR_MARKING, (x, top), (x, top + self.MARKER_LENGTH), 6)
                y += period

        for rect, color in view["obstacles"]:
            self._draw_obstacle(rect, color)

        self._draw_player(view["player"], view["alive"])

    def _draw_obstacle(self, rect, hsl):
        body = pygame.Rect(int(rect.x), int(rect.y), int(rect.width), int(rect.height))
        self._draw_shadow(body.move(6, 6), self.COLOR_OBSTACLE_SHADOW)

        color = pygame.Color(0, 0, 0)
        hue, sat, light = hsl
        color.hsla = (hue, sat, light, 100)
        pygame.draw.rect(self.screen, color, body, border_radius=8)

        window = pygame.Rect(
            int(rect.x + rect.width * 0.15), int(rect.y + rect.height * 0.15),
            int(rect.width * 0.7), int(rect.height * 0.35)
        )
        pygame.draw.rect(self.screen, self._lerp_color(color, (255, 255, 255), 0.12), window)

    def _draw_shadow(self, rect, rgba, radius=0):
        # Per-pixel alpha surface so markings and road show through
        shadow = pygame.Surface(rect.size, pygame.SRCALPHA)
        pygame.draw.rect(shadow, rgba, shadow.get_rect(), border_radius=radius)
        self.screen.blit(shadow, rect.topleft)

    def _draw_player(self, rect, alive):
        px, py, w, h = int(rect.x), int(rect.y), int(rect.width), int(rect.height)

        self._draw_shadow(pygame.Rect(px + 6, py + h - 6, w, 10), self.COLOR_PLAYER_SHADOW, radius=8)

        top, bottom = self.COLOR_PLAYER_TOP, self.COLOR_PLAYER_BOTTOM
        if not alive:
            top, bottom = self._lerp_color(top, (60, 60, 60), 0.5), self._lerp_color(bottom, (60, 60, 60), 0.5)
        pygame.draw.rect(self.screen, top, (px, py, w, h), border_radius=12)
        pygame.draw.rect(self.screen, bottom, (px, py + h // 2, w, h - h // 2),
                         border_bottom_left_radius=12, border_bottom_right_radius=12)

        pygame.draw.rect(self.screen, self.COLOR_WINDSHIELD,
                         (px + int(w * 0.15), py + int(h * 0.12), int(w * 0.7), int(h * 0.28)), border_radius=6)
        pygame.draw.rect(self.screen, self.COLOR_HEADLIGHT, (px + 6, py + h - 22, 8, 12), border_radius=3)
        pygame.draw.rect(self.screen, self.COLOR_HEADLIGHT, (px + w - 14, py + h - 22, 8, 12), border_radius=3)

    def _render_ui(self, view):
        score_text = self.font_small.render(f"SCORE: {view['score']}", True, self.COLOR_TEXT)
        self.screen.blit(score_text, (10, 10))

        high_text = self.font_small.render(f"HI: {view['high_score']}", True, self.COLOR_TEXT)
        self.screen.blit(high_text, (self.screen.get_width() - high_text.get_width() - 10, 10))

        status = view["status"]
        if status == GameStatus.NOT_STARTED:
            self._render_overlay("STREET RACER", "Press ENTER to start", self.COLOR_TEXT)
        elif status == GameStatus.PAUSED:
            self._render_overlay("Paused", "Press P to resume", self.COLOR_TEXT)
        elif status == GameStatus.CRASHED and self._crash_message_due():
            self._render_overlay(f"You crashed! Score: {view['score']}", "Press R to restart", self.COLOR_CRASH)

    def _crash_message_due(self):
        if self.crash_ticks is None:
            return True
        return pygame.time.get_ticks() - self.crash_ticks >= self.CRASH_MESSAGE_DELAY_MS

    def _render_overlay(self, message, hint, color):
        width, height = self.screen.get_size()
        overlay = pygame.Surface((width, height), pygame.SRCALPHA)
        overlay.fill((0, 0, 0, 150))
        self.screen.blit(overlay, (0, 0))

        msg_surf = self.font_large.render(message, True, color)
        if msg_surf.get_width() > width - 20:
            msg_surf = self.font_small.render(message, True, color)
        self.screen.blit(msg_surf, msg_surf.get_rect(center=(width // 2, height // 2 - 20)))

        hint_surf = self.font_small.render(hint, True, self.COLOR_TEXT)
        self.screen.blit(hint_surf, hint_surf.get_rect(center=(width // 2, height // 2 + 20)))

    def _lerp_color(self, c1, c2, t):
        return tuple(int(a + (b - a) * t) for a, b in zip(tuple(c1)[:3], c2))

    def render(self):
        if self.render_mode == "rgb_array":
            return self._get_observation()
        elif self.render_mode == "human":
            obs_array = self._get_observation()
            self.human_screen.blit(self.screen, (0, 0))
            pygame.event.pump()
            pygame.display.flip()
            return obs_array

    def _get_info(self):
        return {
            "score": int(self.sim.score),
            "distance": self.sim.distance,
            "speed": self.sim.speed,
            "high_score": self.sim.high_score,
            "status": self.sim.status,
            "steps": self.steps,
        }

    def close(self):
        pygame.quit()

    def validate_implementation(self):
        print("Running implementation validation...")
        # Test action space
        assert self.action_space.shape == (3,)
        assert self.action_space.nvec.tolist() == [5, 2, 2]

        # Test observation space
        test_obs = self._get_observation()
        assert test_obs.shape == (self.SCREEN_HEIGHT, self.SCREEN_WIDTH, 3)
        assert test_obs.dtype == np.uint8

        # Test reset
        obs, info = self.reset()
        assert obs.shape == (self.SCREEN_HEIGHT, self.SCREEN_WIDTH, 3)
        assert isinstance(info, dict)

        # Test step
        test_action = self.action_space.sample()
        obs, reward, term, trunc, info = self.step(test_action)
        assert obs.shape == (self.SCREEN_HEIGHT, self.SCREEN_WIDTH, 3)
        assert isinstance(reward, (int, float))
        assert isinstance(term, bool)
        assert trunc == False
        assert isinstance(info, dict)

        print("✓ Implementation validated successfully")


def main():
    # Make sure to unset the headless driver so a real window opens
    if os.environ.get("SDL_VIDEODRIVER") == "dummy":
        del os.environ["SDL_VIDEODRIVER"]

    env = StreetRacerEnv(render_mode="human")
    env.reset(options={"autostart": False})

    print(StreetRacerEnv.game_description)
    print(StreetRacerEnv.user_guide)

    running = True
    reported = False
    drag_start_x = None

    while running:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.VIDEORESIZE:
                env.human_screen = pygame.display.set_mode(event.size, pygame.RESIZABLE)
                env.resize(event.w, event.h)
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    running = False
                elif event.key == pygame.K_p:
                    env.toggle_pause()
                elif event.key in (pygame.K_RETURN, pygame.K_r):
                    if event.key == pygame.K_r or env.sim.status == GameStatus.NOT_STARTED:
                        env.start()
                        reported = False
            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                drag_start_x = event.pos[0]
            elif event.type == pygame.MOUSEBUTTONUP and event.button == 1 and drag_start_x is not None:
                env.swipe(event.pos[0] - drag_start_x)
                drag_start_x = None

        keys = pygame.key.get_pressed()
        if keys[pygame.K_LEFT] or keys[pygame.K_a]:
            movement = 3
        elif keys[pygame.K_RIGHT] or keys[pygame.K_d]:
            movement = 4
        else:
            movement = 0
        space_held = 1 if keys[pygame.K_SPACE] else 0

        obs, reward, terminated, truncated, info = env.step([movement, space_held, 0])
        env.render()

        if terminated and not reported:
            print(f"Crashed! Score: {info['score']}, Distance: {info['distance']:.0f}, High score: {info['high_score']}")
            reported = True

        env.dt = env.clock.tick(env.FPS) / 1000.0

    env.close()


if __name__ == '__main__':
    main()
