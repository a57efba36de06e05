"""
Exchange Infrastructure Layer
=============================

SQLAlchemy ORM models migrated at startup.
"""

from exchangeapp.exchange.infrastructure.models import UserModel, ArticleModel, ExchangeRateModel

__all__ = [
    "UserModel",
    "ArticleModel",
    "ExchangeRateModel",
]
