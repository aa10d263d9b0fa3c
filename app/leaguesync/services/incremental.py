from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from ..models.match import MatchFrames


@dataclass
class FramePlan:
    to_fetch: List[str] = field(default_factory=list)
    reused: Dict[str, MatchFrames] = field(default_factory=dict)
    skipped: int = 0


def plan_frame_fetches(
    match_ids: Iterable[str],
    existing: Dict[str, MatchFrames],
    full: bool = False,
) -> FramePlan:
    """
    Decide which match detail pages still need fetching.

    A match is skipped purely on id presence with at least one captured frame;
    changed detail is not detected. `full` re-fetches everything.
    """
    plan = FramePlan()
    for match_id in match_ids:
        if match_id in plan.reused or match_id in plan.to_fetch:
            continue
        prior = existing.get(match_id)
        if not full and prior is not None and prior.frames:
            plan.reused[match_id] = prior
            plan.skipped += 1
            continue
        plan.to_fetch.append(match_id)
    return plan
