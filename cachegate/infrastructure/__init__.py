"""
Infrastructure Module

Store adapter and versioned cache built on it.
"""
