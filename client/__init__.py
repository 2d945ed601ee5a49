"""
client — auth client with offline fallback.

Tries the HTTP backend first and degrades to a local, plaintext key/value
store only when the backend cannot be reached.  The local mode is a
convenience for offline use and is NOT a security boundary.
"""
