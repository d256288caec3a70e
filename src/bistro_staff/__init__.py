"""
Staff and admin JSON API for the bistro point-of-sale.
"""
