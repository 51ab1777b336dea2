"""Markdown memory files — context assembly, stamped writes, search.

Layout:
    ~/.pi/agent/memory/
    ├── MEMORY.md                      # Long-term: preferences, decisions, durable facts
    ├── SCRATCHPAD.md                  # Checklist of open / done items
    ├── notes/
    │   └── lessons.md                 # Free-form notes, one file per topic
    └── daily/
        ├── 2026-02-18.md              # Daily logs (append-only)
        └── cache.json                 # Dashboard summary cache

Extra root files (e.g. SOUL.md) can be injected via PI_CONTEXT_FILES.
"""
