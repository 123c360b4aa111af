"""
Application Layer

FastAPI app factory, request guard and admin endpoints built on CacheGate.
"""
