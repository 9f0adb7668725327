"""
Authentication for the OG Studio dashboard.

Design goals:
- GitHub OAuth is the only sign-in path.
- Server-side sessions (Postgres) referenced by a signed HttpOnly cookie.
- One new session per successful login; sessions are never reused across callbacks.
"""
