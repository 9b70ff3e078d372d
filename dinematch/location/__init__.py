"""
Location resolution.

Responsibilities:
- Validate postal codes before any lookup is attempted.
- Resolve the diner's current location, bounded by a timeout.
- Geocode a postal code as the manual fallback when location is unavailable.
"""
