"""
Shared core of the bistro point-of-sale: store, models and domain services.
"""
