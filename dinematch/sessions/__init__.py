"""
Group dining sessions.

Responsibilities:
- Session, participant and derived-view models
- Pure lifecycle and voting transforms (coordinator)
- Versioned persistence with compare-and-set writes (store)
- Retrying orchestration, lazy expiry and events (service)
- Cancelable polling of remote changes (sync)
"""
