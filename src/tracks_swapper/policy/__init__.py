"""Track swap policy: which track leads its group and becomes default."""

from tracks_swapper.policy.swap import (
    LanguagePreferences,
    SwapDecision,
    SwapPlan,
    apply_swap,
    find_swap,
    language_matches,
    plan_swaps,
    track_order,
)

__all__ = [
    "LanguagePreferences",
    "SwapDecision",
    "SwapPlan",
    "apply_swap",
    "find_swap",
    "language_matches",
    "plan_swaps",
    "track_order",
]
