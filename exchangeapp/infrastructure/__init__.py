"""
Infrastructure Layer
=====================

Connections to external dependencies:
- Database engine bootstrap and sessions
- Redis cache bootstrap
- Startup retry policy and bootstrap sequence
"""
