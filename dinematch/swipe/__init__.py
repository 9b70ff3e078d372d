"""
Single-diner swipe engine.

Responsibilities:
- Walk a fixed, ordered list of candidate restaurants.
- Record like/dislike decisions with one-step undo.
- Report progress and completion.
"""
