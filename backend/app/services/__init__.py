"""
Services Layer

Playoff bracket reconciliation and read-side assembly:
- Take plain inputs (league ids, sessions, raw upstream payloads)
- Return dataclasses, model instances or summary dicts
- Never touch HTTP request/response objects
- Only bracket_upsert writes to the database
"""
