"""
Exchange Module
===============

Persistent entities of the exchange-rate application: users, articles
and daily exchange rates.
"""
