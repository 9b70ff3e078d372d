"""
Restaurant catalog.

Responsibilities:
- Define the Restaurant and Coordinate value types.
- Fetch candidate restaurants from Google Places, or from a bundled fake dataset.
- Cache fetches and discard results from superseded searches.
"""
