"""
TitleDesk Backend — Middleware Package
========================================

Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → route

Rate limiting runs first so rejected requests cost nothing; the request ID
is set before the access log line is written so both carry the same ID.
"""
