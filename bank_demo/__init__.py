"""
Bank Demo Data Service

Data-access layer for the bank demo: filtered, sorted and paginated queries
over customers, accounts, transactions and branches, routed to one of three
interchangeable relational targets per request.
"""

__version__ = "1.0.0"
