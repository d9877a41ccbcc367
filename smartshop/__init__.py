"""SmartShop: hybrid product recommendation service.

This package provides a backend service for generating personalized product
recommendations by combining user-based collaborative filtering, item-based
category/tag matching, content-based preference matching and popularity
fallbacks.

Modules:
    api: FastAPI application and REST API endpoints
    recommender: Recommendation engine, stores and cache
    config: Engine policy constants and runtime settings
"""

__version__ = "0.1.0"
