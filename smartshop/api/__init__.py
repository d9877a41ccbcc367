"""FastAPI application module for SmartShop.

This module contains the FastAPI application, route handlers, and API
endpoints for the recommendation service. It exposes cached hybrid
recommendations, forced regeneration and debugging views of the engine.
"""
