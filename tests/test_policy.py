"""
Test suite for street_racer.policy -- the scripted autopilot.
"""

import os
import tempfile
import unittest

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")

import numpy as np

from street_racer.core import Obstacle
from street_racer.env import StreetRacerEnv
from street_racer.policy import policy


class TestPolicy(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.env = StreetRacerEnv(high_score_path=os.path.join(self.tmp.name, "hs.json"))
        self.env.reset(seed=4)
        self.env.sim.spawner.interval = 1e9

    def tearDown(self):
        self.tmp.cleanup()

    def add_obstacle(self, lane, y, height=50):
        sim = self.env.sim
        sim.obstacles.append(Obstacle(lane, sim.lane_x(lane, 48), y, 48, height, 1.0, (0, 80, 40)))

    def test_empty_road_holds_lane(self):
        self.assertEqual(policy(self.env), [0, 0, 0])

    def test_dodges_obstacle_ahead(self):
        p = self.env.sim.player
        self.add_obstacle(1, p.y - 300)
        self.assertEqual(policy(self.env), [3, 0, 0])

    def test_picks_the_open_lane(self):
        p = self.env.sim.player
        self.add_obstacle(1, p.y - 300)
        self.add_obstacle(0, p.y - 400)
        self.assertEqual(policy(self.env), [4, 0, 0])

    def test_brakes_when_close(self):
        p = self.env.sim.player
        for lane in range(3):
            self.add_obstacle(lane, p.y - 100)
        self.assertEqual(policy(self.env), [0, 1, 0])

    def test_ignores_obstacles_behind(self):
        p = self.env.sim.player
        self.add_obstacle(1, p.y + p.height + 10)
        self.assertEqual(policy(self.env), [0, 0, 0])

    def test_actions_are_valid_over_an_episode(self):
        self.env.reset(seed=4)
        for _ in range(600):
            action = policy(self.env)
            self.assertTrue(self.env.action_space.contains(np.array(action)))
            _, _, terminated, truncated, _ = self.env.step(action)
            if terminated or truncated:
                break


if __name__ == "__main__":
    unittest.main()
