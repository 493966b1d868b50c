from street_racer.core import LANE_COUNT


def policy(env):
    # Strategy: Score every lane by the gap to the nearest obstacle still above the
    # car's rear bumper (an empty lane scores infinity). Drift one lane toward the
    # best-scoring lane, and brake when the current lane is getting crowded.
    view = env.sim.snapshot()
    player = view["player"]
    lane = view["lane"]

    gaps = [float("inf")] * LANE_COUNT
    for rect, _ in view["obstacles"]:
        if rect.y > player.y + player.height:
            continue  # already behind us
        ob_lane = _lane_of(rect, view["field"])
        gap = player.y - (rect.y + rect.height)
        gaps[ob_lane] = min(gaps[ob_lane], gap)

    best = max(range(LANE_COUNT), key=lambda i: (gaps[i], -abs(i - lane)))
    brake = 1 if gaps[lane] < player.height * 1.5 else 0

    if gaps[best] > gaps[lane]:
        if best < lane:
            return [3, brake, 0]  # Steer left
        if best > lane:
            return [4, brake, 0]  # Steer right
    return [0, brake, 0]


def _lane_of(rect, field):
    center = rect.x + rect.width / 2 - field["padding"]
    return min(LANE_COUNT - 1, max(0, int(center // field["lane_width"])))
