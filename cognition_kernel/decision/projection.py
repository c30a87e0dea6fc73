"""
Action Projection — how an action kind is expected to move each goal.

Two static tables:
  BASE_EFFECTS               action kind -> signed change to abstract features
  FEATURE_GOAL_PROJECTION    feature -> signed weight on each goal

The hint for (goal, action) is the dot product of the two, clamped to -1..1.
Neither table reads goal activation; the projection is goal-free.
"""

from typing import Dict, List

FEATURE_GOAL_PROJECTION: Dict[str, Dict[str, float]] = {
    "threat": {"safety": -1.0, "control": -0.4, "rest": -0.2},
    "escape": {"safety": 0.6, "control": 0.2},
    "cover": {"safety": 0.7, "rest": 0.1},
    "visibility": {"safety": -0.4, "affiliation": 0.2, "exploration": 0.2},
    "socialTrust": {"affiliation": 0.8, "safety": 0.2},
    "emotionValence": {"affiliation": 0.3, "rest": 0.2},
    "resourceAccess": {"resource": 0.9, "exploration": 0.2},
    "scarcity": {"resource": -0.8},
    "fatigue": {"rest": -0.9},
    "stress": {"rest": -0.4, "control": -0.3},
    "information": {"exploration": 0.8, "control": 0.3},
}

BASE_EFFECTS: Dict[str, Dict[str, float]] = {
    "hide": {"threat": -0.5, "cover": 0.6, "visibility": -0.5, "resourceAccess": -0.1},
    "escape": {"threat": -0.7, "escape": -0.2, "fatigue": 0.3, "socialTrust": -0.1},
    "observe": {"information": 0.5, "threat": -0.05},
    "rest": {"fatigue": -0.7, "stress": -0.3, "threat": 0.1},
    "talk": {"socialTrust": 0.4, "emotionValence": 0.2, "visibility": 0.1, "information": 0.2},
    "help": {"socialTrust": 0.6, "emotionValence": 0.3, "fatigue": 0.2, "resourceAccess": -0.1},
    "attack": {"threat": -0.4, "socialTrust": -0.6, "stress": 0.3, "visibility": 0.4, "resourceAccess": 0.2},
    "wait": {"fatigue": -0.1, "stress": -0.05},
}


def action_kinds() -> List[str]:
    return sorted(BASE_EFFECTS)


def project_action(action_kind: str, goal_id: str) -> float:
    """Signed effect of ``action_kind`` on ``goal_id``; 0.0 for unknown pairs."""
    effects = BASE_EFFECTS.get(action_kind)
    if not effects:
        return 0.0
    total = 0.0
    for feature, delta in effects.items():
        total += delta * FEATURE_GOAL_PROJECTION.get(feature, {}).get(goal_id, 0.0)
    return max(-1.0, min(1.0, total))
