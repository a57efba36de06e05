"""
Shared Infrastructure
=====================

Cross-cutting technical concerns:
- Structured logging setup
"""
