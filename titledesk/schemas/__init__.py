"""
Pydantic request/response schemas.

All schemas serialize with camelCase keys (the dashboard's convention)
and accept either camelCase or snake_case on input.
"""
