"""API module for Earshot.

The api layer:
- Validates inputs, reads/writes DB
- Returns round and answer payloads for the listening UI
- Forbidden: serving audio bytes, exposing storage keys
"""
