from __future__ import annotations

from collections import Counter
from typing import Any


def compute_analytics(events: list[dict[str, Any]]) -> dict[str, Any]:
    def of_type(kind: str) -> list[dict[str, Any]]:
        return [e for e in events if e["type"] == kind]

    created = of_type("session_created")
    joins = of_type("participant_joined")
    votes = of_type("vote_recorded")
    swipes = of_type("swipe")

    # Completion and matches
    completions = [
        e for e in of_type("status_changed") if e.get("status") == "completed"
    ]
    with_match = sum(1 for e in completions if e.get("matched", 0) > 0)

    # Average group size at completion
    sizes = [e["participants"] for e in completions if "participants" in e]
    avg_participants = round(sum(sizes) / len(sizes), 1) if sizes else 0.0

    # Like rate across group votes and solo swipes
    decisions = votes + swipes
    likes = [e for e in decisions if e.get("vote") == "like"]
    like_rate = round(len(likes) / len(decisions) * 100, 1) if decisions else 0.0

    # Top liked restaurants
    liked_counter: Counter[str] = Counter()
    for e in likes:
        if e.get("restaurant_id"):
            liked_counter[e["restaurant_id"]] += 1
    top_liked = [{"restaurant_id": r, "count": c} for r, c in liked_counter.most_common(10)]

    return {
        "total_sessions": len(created),
        "completed_sessions": len(completions),
        "sessions_with_match": with_match,
        "match_rate": round(with_match / len(completions) * 100, 1) if completions else 0.0,
        "total_joins": len(joins),
        "avg_participants": avg_participants,
        "total_votes": len(votes),
        "total_swipes": len(swipes),
        "like_rate": like_rate,
        "expired_sessions": len(of_type("session_expired")),
        "top_liked_restaurants": top_liked,
    }
