"""Last-24h session dashboard.

Layout (host session logs, read-only):
    ~/.pi/agent/sessions/
    ├── --Users-jack-project--/
    │   └── 2026-02-18T10-00-00_<id>.jsonl   # one JSONL log per session
    └── ...

The aggregated summary is cached in <daily dir>/cache.json.
"""
