"""
FastAPI Application Package

This package contains the FastAPI application exposing NSE market data and
option chain analytics over REST.
"""
