"""
Core Package

Contains the exchange-agnostic building blocks:
- config: Pydantic settings loaded from .env
- logging: Application-wide logging setup
- errors: Error taxonomy shared by every layer
- schemas: Pydantic models for normalized data structures (option chains, quotes, lookups)
- utils: Date formatting, date range chunking and archive extraction
"""
