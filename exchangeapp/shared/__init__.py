"""
Shared Kernel Module
====================

Generic infrastructure used by every part of the service (logging,
HTTP middleware). No exchange-rate specifics belong here.
"""
