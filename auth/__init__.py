"""
auth — credential primitives.

Provides:
  • Error taxonomy shared by the server and the client fallback
  • Password hashing (bcrypt, per-call salt)
  • JWT issuance & verification (HS256)
"""
