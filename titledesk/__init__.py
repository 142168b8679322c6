"""
TitleDesk Backend
=================

REST API behind the TitleDesk dashboard, used by a property title
verification firm to track applications (title files) from login to
completion.

Layers:

    ┌─────────────────────────────────────┐
    │  routes/        HTTP concerns only  │
    ├─────────────────────────────────────┤
    │  services/      business rules      │
    ├─────────────────────────────────────┤
    │  models/ + schemas/                 │
    ├─────────────────────────────────────┤
    │  database.py    async sessions      │
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
