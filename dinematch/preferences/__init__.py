"""
Dining preferences.

Responsibilities:
- Describe a search: delivery mode, distance radius, excluded cuisines, price range.
- Translate preferences into catalog search arguments.
- Filter fetched restaurants down to the ones that satisfy the preferences.
"""
