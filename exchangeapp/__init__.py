"""
exchangeapp
===========

Exchange-rate web service: dependency bootstrap, schema migration and
HTTP serving.
"""

__version__ = "1.0.0"
