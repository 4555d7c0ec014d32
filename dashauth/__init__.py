"""
Account authentication for the customer dashboard.
"""
